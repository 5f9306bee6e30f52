"""
Field Policy Value Objects

Architectural Intent:
- Per-field mutation metadata exposed to the orchestration engine
- A declared field is either replace-on-change (a new value forces
  destroy-and-recreate) or immutable-after-create (provider-assigned, never
  written by the user)
- There is deliberately no "update in place" tag: no field supports it
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class FieldMutability(Enum):
    REPLACE_ON_CHANGE = auto()
    IMMUTABLE_AFTER_CREATE = auto()


@dataclass(frozen=True)
class FieldPolicy:
    name: str
    mutability: FieldMutability
    required: bool = False
    max_items: Optional[int] = None
    description: str = ""

    @property
    def forces_replacement(self) -> bool:
        return self.mutability == FieldMutability.REPLACE_ON_CHANGE


def replacement_fields(
    policies: dict[str, FieldPolicy],
    prior: dict[str, object],
    desired: dict[str, object],
) -> list[str]:
    """Return the replace-on-change fields whose values differ, in policy order."""
    return [
        name
        for name, policy in policies.items()
        if policy.forces_replacement and prior.get(name) != desired.get(name)
    ]
