# Persistent models
from hotelops.models.ontology import (
    Facility, Room, Booking, GuestProfile, ServiceItem, InventoryTransaction,
    OtaOrder, HousekeepingTask, WebhookConfig, BankAccount, Staff, Expense,
    LeaveRequest, SalaryAdvance, TimeLog, ShiftSchedule
)

__all__ = [
    'Facility', 'Room', 'Booking', 'GuestProfile', 'ServiceItem', 'InventoryTransaction',
    'OtaOrder', 'HousekeepingTask', 'WebhookConfig', 'BankAccount', 'Staff', 'Expense',
    'LeaveRequest', 'SalaryAdvance', 'TimeLog', 'ShiftSchedule'
]
