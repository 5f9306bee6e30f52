"""
Instance Type Value Objects

Architectural Intent:
- Immutable descriptions of the provider's hardware catalog
- Region, InstanceSpecs and InstanceType are shared by the catalog
  (instance-types endpoint) and by observed instances
- InstanceTypeOffer is one catalog entry: a type plus the regions currently
  reporting spare capacity for it
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Region:
    """Region where an instance or filesystem is located."""
    name: str
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Region name cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Region":
        return Region(name=data["name"], description=data.get("description") or "")


@dataclass(frozen=True)
class InstanceSpecs:
    """Hardware configuration of an instance type."""
    vcpus: int = 0
    memory_gib: int = 0
    storage_gib: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "vcpus": self.vcpus,
            "memory_gib": self.memory_gib,
            "storage_gib": self.storage_gib,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "InstanceSpecs":
        return InstanceSpecs(
            vcpus=int(data.get("vcpus") or 0),
            memory_gib=int(data.get("memory_gib") or 0),
            storage_gib=int(data.get("storage_gib") or 0),
        )


@dataclass(frozen=True)
class InstanceType:
    """Hardware configuration and pricing of an instance type."""
    name: str
    description: str = ""
    price_cents_per_hour: int = 0
    specs: InstanceSpecs = field(default_factory=InstanceSpecs)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Instance type name cannot be empty")

    @property
    def price_dollars_per_hour(self) -> float:
        return self.price_cents_per_hour / 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "price_cents_per_hour": self.price_cents_per_hour,
            "specs": self.specs.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "InstanceType":
        return InstanceType(
            name=data["name"],
            description=data.get("description") or "",
            price_cents_per_hour=int(data.get("price_cents_per_hour") or 0),
            specs=InstanceSpecs.from_dict(data.get("specs") or {}),
        )


@dataclass(frozen=True)
class InstanceTypeOffer:
    """A catalog entry: an instance type and where it can launch right now."""
    instance_type: InstanceType
    regions_with_capacity: tuple[Region, ...] = ()

    @property
    def name(self) -> str:
        return self.instance_type.name

    @property
    def region_names(self) -> frozenset[str]:
        return frozenset(r.name for r in self.regions_with_capacity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "instance_type": self.instance_type.to_dict(),
            "regions_with_capacity_available": [
                r.to_dict() for r in self.regions_with_capacity
            ],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "InstanceTypeOffer":
        return InstanceTypeOffer(
            instance_type=InstanceType.from_dict(data["instance_type"]),
            regions_with_capacity=tuple(
                Region.from_dict(r)
                for r in data.get("regions_with_capacity_available") or []
            ),
        )
