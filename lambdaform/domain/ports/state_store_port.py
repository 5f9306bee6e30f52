"""
State Store Port

Architectural Intent:
- Persistence contract for the registry's resource snapshots
- Snapshots are keyed by address (the user's name for a declared resource)
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class StateStorePort(Protocol):
    def load(self, address: str) -> Optional[dict]: ...

    def save(self, address: str, kind: str, resource_id: str, state: dict) -> None: ...

    def remove(self, address: str) -> None: ...

    def list_resources(self, kind: Optional[str] = None) -> list[dict]: ...

    def record_operation(
        self,
        address: str,
        operation: str,
        success: bool,
        resource_id: str = "",
        details: str = "",
    ) -> int: ...
