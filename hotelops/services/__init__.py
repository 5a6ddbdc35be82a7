# Business services
from hotelops.services.room_service import RoomService
from hotelops.services.booking_service import BookingService
from hotelops.services.swap_service import SwapService
from hotelops.services.ota_service import OtaService
from hotelops.services.housekeeping_service import HousekeepingService
from hotelops.services.inventory_service import InventoryService
from hotelops.services.webhook_service import WebhookService
from hotelops.services.ocr_service import OcrService
from hotelops.services.residence_service import ResidenceService
from hotelops.services.payment_qr import PaymentQrService
from hotelops.services.expense_service import ExpenseService
from hotelops.services.hr_service import HrService
from hotelops.services.report_service import ReportService
from hotelops.services.staff_service import StaffService

__all__ = [
    'RoomService', 'BookingService', 'SwapService', 'OtaService', 'HousekeepingService',
    'InventoryService', 'WebhookService', 'OcrService', 'ResidenceService', 'PaymentQrService',
    'ExpenseService', 'HrService', 'ReportService', 'StaffService'
]
