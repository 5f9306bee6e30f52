"""
Change Planner Service

Architectural Intent:
- Decides what the registry must do to move a declared resource from its
  tracked snapshot to the desired spec
- Driven entirely by field metadata: any replace-on-change field that differs
  forces REPLACE; there is no in-place update action

Domain Logic:
- No snapshot            -> CREATE
- Snapshot, no changes   -> NOOP
- Snapshot, field change -> REPLACE (delete tracked id, then create)
- name is only compared when the spec declares one: an unnamed spec adopts
  whatever name the provider reports
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from lambdaform.domain.entities.instance_state import InstanceState
from lambdaform.domain.value_objects.field_policy import replacement_fields
from lambdaform.domain.value_objects.instance_spec import (
    INSTANCE_FIELDS,
    DesiredInstanceSpec,
)
from lambdaform.domain.value_objects.ssh_key import SSH_KEY_FIELDS, SSHKeySpec, SSHKeyState


class PlanAction(Enum):
    CREATE = auto()
    NOOP = auto()
    REPLACE = auto()


@dataclass(frozen=True)
class ChangePlan:
    action: PlanAction
    replaced_fields: tuple[str, ...] = ()

    @property
    def requires_replacement(self) -> bool:
        return self.action == PlanAction.REPLACE

    def describe(self) -> str:
        if self.action == PlanAction.REPLACE:
            return f"replace (forced by: {', '.join(self.replaced_fields)})"
        return self.action.name.lower()


def plan_instance_change(
    prior: Optional[InstanceState],
    desired: DesiredInstanceSpec,
) -> ChangePlan:
    if prior is None:
        return ChangePlan(PlanAction.CREATE)

    prior_fields = prior.declared_fields()
    desired_fields = desired.declared_fields()
    if desired.name is None:
        desired_fields["name"] = prior_fields["name"]

    changed = replacement_fields(INSTANCE_FIELDS, prior_fields, desired_fields)
    if changed:
        return ChangePlan(PlanAction.REPLACE, tuple(changed))
    return ChangePlan(PlanAction.NOOP)


def plan_ssh_key_change(
    prior: Optional[SSHKeyState],
    desired: SSHKeySpec,
) -> ChangePlan:
    if prior is None:
        return ChangePlan(PlanAction.CREATE)

    changed = replacement_fields(
        SSH_KEY_FIELDS,
        prior.declared_fields(),
        {"name": desired.name, "public_key": desired.public_key},
    )
    if changed:
        return ChangePlan(PlanAction.REPLACE, tuple(changed))
    return ChangePlan(PlanAction.NOOP)
