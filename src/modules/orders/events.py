"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """An order was placed and its stock is reserved."""

    order_number: str = ""
    total: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    old_status: Optional[str] = None
    new_status: str = ""


@dataclass(frozen=True)
class OrderStockReleased(DomainEvent):
    """Stock was credited back after a move into a released status."""

    new_status: str = ""
    failed_product_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OrderPlacementRolledBack(DomainEvent):
    """Placement failed after the header was persisted; order cancelled."""

    reason: str = ""
