"""
Capacity Index Value Object

Architectural Intent:
- Query-time view of the catalog: instance type name -> regions with capacity
- Rebuilt from a fresh catalog on every poll, never cached or persisted
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from lambdaform.domain.value_objects.instance_type import InstanceTypeOffer


@dataclass(frozen=True)
class CapacityIndex:
    regions_by_type: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @staticmethod
    def from_catalog(catalog: Mapping[str, InstanceTypeOffer]) -> "CapacityIndex":
        return CapacityIndex(
            regions_by_type={name: offer.region_names for name, offer in catalog.items()}
        )

    def knows(self, instance_type_name: str) -> bool:
        return instance_type_name in self.regions_by_type

    def regions_for(self, instance_type_name: str) -> Optional[frozenset[str]]:
        """Regions with capacity, or None when the type does not exist."""
        return self.regions_by_type.get(instance_type_name)

    def has_capacity(self, instance_type_name: str, region_name: str) -> bool:
        regions = self.regions_for(instance_type_name)
        return regions is not None and region_name in regions

    def __len__(self) -> int:
        return len(self.regions_by_type)
