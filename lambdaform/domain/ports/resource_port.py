"""
Resource Reconciler Port

Architectural Intent:
- Shared capability interface implemented once per resource kind
  (instance, SSH key) and called by the orchestration engine
- update is part of the contract only so it can be rejected loudly
"""

from typing import Any, Protocol, TypeVar, runtime_checkable

SpecT = TypeVar("SpecT")
StateT = TypeVar("StateT")


@runtime_checkable
class ResourceReconcilerPort(Protocol[SpecT, StateT]):
    async def create(self, spec: SpecT) -> StateT: ...

    async def read(self, state: StateT) -> StateT: ...

    async def update(self, prior: StateT, desired: SpecT) -> Any: ...

    async def delete(self, state: StateT) -> Any: ...
