from dataclasses import dataclass
from typing import Any, Optional

from lambdaform.domain.value_objects.instance_type import Region


@dataclass(frozen=True)
class Filesystem:
    """
    Value Object representing a shared filesystem.
    """
    id: str
    name: str
    region: Region
    mount_point: str = ""
    created: str = ""
    is_in_use: bool = False
    bytes_used: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "region": self.region.to_dict(),
            "mount_point": self.mount_point,
            "created": self.created,
            "is_in_use": self.is_in_use,
            "bytes_used": self.bytes_used,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Filesystem":
        bytes_used = data.get("bytes_used")
        return Filesystem(
            id=data["id"],
            name=data["name"],
            region=Region.from_dict(data["region"]),
            mount_point=data.get("mount_point") or "",
            created=data.get("created") or "",
            is_in_use=bool(data.get("is_in_use", False)),
            bytes_used=int(bytes_used) if bytes_used is not None else None,
        )
