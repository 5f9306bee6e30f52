"""
Observed Instance Value Object

Architectural Intent:
- Authoritative remote truth for one instance, refreshed on every read
- Never computed locally: instances of this class are only built from a
  provider response (or from a persisted copy of one)

Design Decisions:
- status is kept as the provider's raw string; the vocabulary belongs to the
  provider, so unknown values are preserved rather than rejected
- to_dict/from_dict use the provider's wire shape so a persisted snapshot and
  an API payload parse through the same path
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from lambdaform.domain.value_objects.instance_type import InstanceType, Region


class InstanceStatus(str, Enum):
    """Known provider status values."""
    BOOTING = "booting"
    ACTIVE = "active"
    UNHEALTHY = "unhealthy"
    TERMINATED = "terminated"
    TERMINATING = "terminating"

    @classmethod
    def is_known(cls, value: str) -> bool:
        return value in cls._value2member_map_


@dataclass(frozen=True)
class ObservedInstance:
    """Virtual machine as reported by the provider."""
    id: str
    status: str
    region: Region
    instance_type: InstanceType
    name: Optional[str] = None
    hostname: Optional[str] = None
    ip: Optional[str] = None
    jupyter_token: Optional[str] = None
    jupyter_url: Optional[str] = None
    ssh_key_names: tuple[str, ...] = ()
    filesystem_names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Observed instance id cannot be empty")
        object.__setattr__(self, "ssh_key_names", tuple(self.ssh_key_names))
        object.__setattr__(self, "filesystem_names", tuple(self.filesystem_names))

    @property
    def is_active(self) -> bool:
        return self.status == InstanceStatus.ACTIVE.value

    @property
    def is_network_ready(self) -> bool:
        return bool(self.ip)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "hostname": self.hostname,
            "ip": self.ip,
            "jupyter_token": self.jupyter_token,
            "jupyter_url": self.jupyter_url,
            "region": self.region.to_dict(),
            "instance_type": self.instance_type.to_dict(),
            "ssh_key_names": list(self.ssh_key_names),
            "file_system_names": list(self.filesystem_names),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ObservedInstance":
        return ObservedInstance(
            id=data["id"],
            status=str(data.get("status") or ""),
            region=Region.from_dict(data["region"]),
            instance_type=InstanceType.from_dict(data["instance_type"]),
            name=data.get("name"),
            hostname=data.get("hostname"),
            ip=data.get("ip"),
            jupyter_token=data.get("jupyter_token"),
            jupyter_url=data.get("jupyter_url"),
            ssh_key_names=tuple(data.get("ssh_key_names") or ()),
            filesystem_names=tuple(data.get("file_system_names") or ()),
        )
