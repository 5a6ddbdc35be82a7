"""
OTA order grouping

Providers often split one multi-room reservation into several line items.
Orders are clustered with a heuristic key, then flattened back into a list
where every member of a multi-order cluster carries a 1-based badge.

Key rules:
- Expedia with a booking code of 8+ characters: first 8 characters of the
  code + check-in day
- everything else: platform + lowercased, trimmed guest name + check-in day
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

EXPEDIA = "Expedia"
EXPEDIA_PREFIX_LENGTH = 8


@dataclass
class OtaGroupInfo:
    group_id: int      # id of the first member after sorting
    index: int         # 1-based position inside the group
    total: int


@dataclass
class GroupedOtaOrder:
    order: object
    group_info: Optional[OtaGroupInfo] = None


def _day(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value or "")[:10]


def ota_group_key(order) -> str:
    """Heuristic cluster key for an OTA order"""
    code = order.booking_code or ""
    check_in_day = _day(order.check_in)
    if order.platform == EXPEDIA and len(code) >= EXPEDIA_PREFIX_LENGTH:
        return f"EXP_{code[:EXPEDIA_PREFIX_LENGTH]}_{check_in_day}"
    name = (order.guest_name or "").lower().strip()
    return f"GEN_{order.platform}_{name}_{check_in_day}"


def process_ota_groups(orders: Sequence) -> List[GroupedOtaOrder]:
    """
    Annotate orders with group badges.

    Members of a cluster are sorted by booking code and emitted together at
    the position where the cluster first appears; singletons pass through.
    """
    groups: Dict[str, List] = {}
    for order in orders:
        groups.setdefault(ota_group_key(order), []).append(order)

    result: List[GroupedOtaOrder] = []
    emitted = set()
    for order in orders:
        key = ota_group_key(order)
        if key in emitted:
            continue
        emitted.add(key)

        members = groups[key]
        if len(members) == 1:
            result.append(GroupedOtaOrder(order=members[0]))
            continue

        members = sorted(members, key=lambda o: o.booking_code or "")
        leader_id = members[0].id
        for index, member in enumerate(members, start=1):
            result.append(GroupedOtaOrder(
                order=member,
                group_info=OtaGroupInfo(group_id=leader_id, index=index, total=len(members))
            ))
    return result
