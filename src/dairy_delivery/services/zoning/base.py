"""Zone container used between partitioning and agent assignment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ...models.domain import Delivery

UNLABELED_ZONE = "unlabeled"


@dataclass(slots=True, frozen=True)
class Zone:
    """Deliveries sharing a locality label. Never persisted."""

    label: str
    deliveries: tuple[Delivery, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.deliveries)

    @property
    def delivery_ids(self) -> list[str]:
        return [delivery.id for delivery in self.deliveries]

    def merged_with(self, other: "Zone") -> "Zone":
        return Zone(label=f"{self.label}+{other.label}", deliveries=self.deliveries + other.deliveries)


def zone_sizes(zones: Sequence[Zone]) -> list[int]:
    return [len(zone) for zone in zones]
