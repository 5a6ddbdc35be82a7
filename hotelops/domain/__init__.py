# Pure business rules, no database access
from hotelops.domain.availability import check_availability, find_conflicts, intervals_overlap
from hotelops.domain.financials import (
    CostSplitStrategy, compute_totals, distribute_group_payment,
    settle_cancellation, allocate_ota_charges
)
from hotelops.domain.inventory import positive_deltas
from hotelops.domain.ota_grouping import ota_group_key, process_ota_groups
from hotelops.domain.swap_pricing import PriceStrategy, stay_quantity, calculate_swap_price

__all__ = [
    'check_availability', 'find_conflicts', 'intervals_overlap',
    'CostSplitStrategy', 'compute_totals', 'distribute_group_payment',
    'settle_cancellation', 'allocate_ota_charges',
    'positive_deltas', 'ota_group_key', 'process_ota_groups',
    'PriceStrategy', 'stay_quantity', 'calculate_swap_price',
]
