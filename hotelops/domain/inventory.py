"""
Inventory rules

One-way deduction: quantities on a booking are compared with the last persisted
version; only increases consume stock. Lowering a quantity never restocks.

Standard stock: every room type has a recipe (the set of linen and supplies a
made-up room holds). The requirement for an item is the sum over all rooms of
their recipe quantity; it is compared with the assets actually owned.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from hotelops.models.ontology import ServiceCategory

STANDARD_CATEGORIES = (
    ServiceCategory.LINEN, ServiceCategory.ASSET, ServiceCategory.MINIBAR, ServiceCategory.AMENITY
)


def positive_deltas(
    new_items: Iterable,
    old_items: Iterable,
    key: Callable[[object], Hashable],
    qty: Callable[[object], int] = lambda item: item.quantity
) -> List[Tuple[Hashable, int]]:
    """
    Per-item quantity increase between two versions of a ledger.

    Returns ``(item_key, delta)`` pairs for items whose quantity grew, in the
    order they appear in ``new_items``.
    """
    previous: Dict[Hashable, int] = {}
    for item in old_items:
        previous.setdefault(key(item), int(qty(item) or 0))

    deltas = []
    for item in new_items:
        diff = int(qty(item) or 0) - previous.get(key(item), 0)
        if diff > 0:
            deltas.append((key(item), diff))
    return deltas


class StandardStatus(str, Enum):
    EXACT = "Exact"
    SURPLUS = "Surplus"
    SHORT = "Short"


@dataclass
class StandardLine:
    item_id: int
    item_name: str
    unit: Optional[str]
    category: ServiceCategory
    required: int
    actual: int

    @property
    def variance(self) -> int:
        return self.actual - self.required

    @property
    def status(self) -> StandardStatus:
        if self.variance == 0:
            return StandardStatus.EXACT
        return StandardStatus.SURPLUS if self.variance > 0 else StandardStatus.SHORT


def required_quantities(room_types: Iterable[Optional[str]], recipes: Mapping[str, Iterable]) -> Dict[int, int]:
    """Item id -> quantity needed to make up every room once; untyped rooms need nothing"""
    required: Dict[int, int] = {}
    for room_type in room_types:
        if not room_type:
            continue
        for line in recipes.get(room_type, []):
            required[line.item_id] = required.get(line.item_id, 0) + line.quantity
    return required


def owned_quantity(item) -> int:
    """total_assets when tracked, otherwise the sum of every stock location"""
    if item.total_assets:
        return item.total_assets
    return (item.stock or 0) + (item.in_circulation or 0) + (item.laundry_stock or 0)


def standard_inventory(items: Iterable, required: Mapping[int, int]) -> List[StandardLine]:
    """Shortages first, then exact matches, then surpluses"""
    lines = [
        StandardLine(
            item_id=item.id,
            item_name=item.name,
            unit=item.unit,
            category=item.category,
            required=required.get(item.id, 0),
            actual=owned_quantity(item),
        )
        for item in items if item.category in STANDARD_CATEGORIES
    ]
    return sorted(lines, key=lambda line: line.variance)
