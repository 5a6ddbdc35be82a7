# API Routers
from hotelops.routers import (
    auth, facilities, rooms, bookings, ota_orders, housekeeping, inventory,
    webhooks, guests, expenses, hr, reports, bank_accounts
)

__all__ = [
    'auth', 'facilities', 'rooms', 'bookings', 'ota_orders', 'housekeeping', 'inventory',
    'webhooks', 'guests', 'expenses', 'hr', 'reports', 'bank_accounts'
]
