"""
Pydantic schemas
Request/response validation and typed booking sub-ledgers
"""
from datetime import datetime, date
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator
from hotelops.models.ontology import (
    RoomStatus, BookingStatus, PaymentMethod, ServiceCategory, InventoryTransactionType,
    OtaOrderStatus, OtaPaymentStatus, HousekeepingTaskType, HousekeepingStatus,
    TaskPriority, WebhookEventType, StaffRole, LeaveStatus, SalaryAdvanceStatus,
    TimeLogStatus, ShiftType, ViolationStatus, ViolationType
)
from hotelops.domain.financials import CostSplitStrategy
from hotelops.domain.inventory import StandardStatus
from hotelops.domain.swap_pricing import PriceStrategy


# ============== Booking sub-ledgers ==============
# Legacy rows use camelCase / Vietnamese keys; both spellings are accepted on read.

class PaymentEntry(BaseModel):
    """Append-only payment; refunds are negative amounts"""
    model_config = ConfigDict(populate_by_name=True)

    paid_at: datetime = Field(
        default_factory=datetime.now,
        validation_alias=AliasChoices("paid_at", "ngayThanhToan")
    )
    amount: int = Field(..., validation_alias=AliasChoices("amount", "soTien"))
    method: PaymentMethod = PaymentMethod.CASH
    note: str = Field(default="", validation_alias=AliasChoices("note", "ghiChu"))


class ServiceUsage(BaseModel):
    """Billable consumption line"""
    model_config = ConfigDict(populate_by_name=True)

    service_id: int = Field(..., validation_alias=AliasChoices("service_id", "serviceId"))
    name: str
    price: int = 0
    quantity: int = Field(default=1, ge=0)
    total: int = 0
    time: datetime = Field(default_factory=datetime.now)


class LendingItem(BaseModel):
    """Free loan of a reusable asset"""
    item_id: int
    item_name: str
    quantity: int = Field(default=1, ge=0)
    returned: bool = False


class GuestEntry(BaseModel):
    """Occupant of a booking"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    full_name: str = Field(..., validation_alias=AliasChoices("full_name", "fullName"))
    dob: Optional[str] = None
    id_card: Optional[str] = Field(None, validation_alias=AliasChoices("id_card", "idCard"))
    type: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None


# ============== Auth & staff ==============

class LoginRequest(BaseModel):
    username: str
    password: str


class StaffBase(BaseModel):
    username: str = Field(..., max_length=50)
    name: str = Field(..., max_length=100)
    role: StaffRole = StaffRole.STAFF
    phone: Optional[str] = None
    managed_facilities: Optional[str] = None
    bank_id: Optional[str] = None
    bank_account_no: Optional[str] = None
    bank_account_name: Optional[str] = None
    base_salary: int = Field(default=0, ge=0)
    commission_rate: float = Field(default=0, ge=0)


class StaffCreate(StaffBase):
    password: str = Field(..., min_length=6)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    role: Optional[StaffRole] = None
    phone: Optional[str] = None
    managed_facilities: Optional[str] = None
    bank_id: Optional[str] = None
    bank_account_no: Optional[str] = None
    bank_account_name: Optional[str] = None
    base_salary: Optional[int] = Field(None, ge=0)
    commission_rate: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class StaffResponse(StaffBase):
    id: int
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    staff: StaffResponse


# ============== Facility & room ==============

class FacilityBase(BaseModel):
    name: str = Field(..., max_length=100)
    price: int = Field(default=0, ge=0)
    price_saturday: int = Field(default=0, ge=0)
    note: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    allowed_radius: Optional[int] = Field(None, ge=1)


class FacilityCreate(FacilityBase):
    pass


class FacilityUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    price_saturday: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    allowed_radius: Optional[int] = Field(None, ge=1)


class FacilityResponse(FacilityBase):
    id: int
    room_count: int = 0
    model_config = ConfigDict(from_attributes=True)


class RoomBase(BaseModel):
    facility_id: int
    name: str = Field(..., max_length=20)
    price: Optional[int] = Field(None, ge=0)
    price_saturday: Optional[int] = Field(None, ge=0)
    room_type: Optional[str] = None
    view: Optional[str] = None
    area: Optional[float] = None
    note: Optional[str] = None


class RoomCreate(RoomBase):
    status: RoomStatus = RoomStatus.CLEAN


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=20)
    status: Optional[RoomStatus] = None
    price: Optional[int] = Field(None, ge=0)
    price_saturday: Optional[int] = Field(None, ge=0)
    room_type: Optional[str] = None
    view: Optional[str] = None
    area: Optional[float] = None
    note: Optional[str] = None


class RoomResponse(RoomBase):
    id: int
    status: RoomStatus
    model_config = ConfigDict(from_attributes=True)


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


# ============== Booking ==============

class BookingBase(BaseModel):
    facility_name: str
    room_code: str
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: Optional[str] = None
    source: Optional[str] = None
    collaborator: Optional[str] = None
    payment_method: Optional[str] = None
    check_in: datetime
    check_out: datetime
    extra_fee: int = Field(default=0, ge=0)
    note: Optional[str] = ""


class BookingCreate(BookingBase):
    price: Optional[int] = Field(None, ge=0)     # derived from listed prices when omitted
    services: List[ServiceUsage] = []
    lending: List[LendingItem] = []
    guests: List[GuestEntry] = []
    payments: List[PaymentEntry] = []


class GroupBookingCreate(BaseModel):
    facility_name: str
    room_codes: List[str] = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: Optional[str] = None
    group_name: Optional[str] = None
    source: Optional[str] = None
    collaborator: Optional[str] = None
    payment_method: Optional[str] = None
    check_in: datetime
    check_out: datetime
    note: Optional[str] = ""
    guests: List[GuestEntry] = []


class BookingUpdate(BaseModel):
    facility_name: Optional[str] = None
    room_code: Optional[str] = None
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = None
    source: Optional[str] = None
    collaborator: Optional[str] = None
    payment_method: Optional[str] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    price: Optional[int] = Field(None, ge=0)
    extra_fee: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None
    services: Optional[List[ServiceUsage]] = None
    lending: Optional[List[LendingItem]] = None
    guests: Optional[List[GuestEntry]] = None


class BookingResponse(BaseModel):
    id: int
    facility_name: str
    room_code: str
    customer_name: str
    customer_phone: Optional[str] = None
    source: Optional[str] = None
    collaborator: Optional[str] = None
    payment_method: Optional[str] = None
    check_in: datetime
    check_out: datetime
    status: BookingStatus
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    price: int
    extra_fee: int
    total_revenue: int
    remaining_amount: int
    note: Optional[str] = None
    payments: List[PaymentEntry] = []
    services: List[ServiceUsage] = []
    lending: List[LendingItem] = []
    guests: List[GuestEntry] = []
    is_declared: bool = False
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    is_group_leader: bool = False
    created_at: Optional[datetime] = None


class PaymentCreate(BaseModel):
    amount: int
    method: PaymentMethod = PaymentMethod.CASH
    note: Optional[str] = ""


class PaymentAllocationResponse(BaseModel):
    booking_id: int
    room_code: str
    amount: int


class GroupPaymentResponse(BaseModel):
    group_id: str
    allocations: List[PaymentAllocationResponse]
    allocated_amount: int
    unallocated_amount: int


class GroupFinancials(BaseModel):
    group_id: str
    total: int
    paid: int
    remaining: int
    member_count: int


class CheckInRequest(BaseModel):
    services: Optional[List[ServiceUsage]] = None
    lending: Optional[List[LendingItem]] = None
    guests: Optional[List[GuestEntry]] = None


class CheckOutRequest(BaseModel):
    allow_unsettled: bool = False       # confirm check-out with an open balance
    services: Optional[List[ServiceUsage]] = None


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    cancel_fee: int = Field(default=0, ge=0)


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: List[int] = []


# ============== Room swap ==============

class SwapRequest(BaseModel):
    facility_name: str
    room_code: str
    strategy: PriceStrategy = PriceStrategy.KEEP_OLD
    custom_total: Optional[int] = Field(None, ge=0)


class SwapQuoteResponse(BaseModel):
    new_total: int
    diff: int
    new_unit_price: int
    quantity: int
    unit: str
    explanation: str


# ============== OTA ==============

class OtaOrderImport(BaseModel):
    platform: str
    booking_code: str = Field(..., min_length=1)
    guest_name: str
    guest_phone: Optional[str] = None
    email_date: Optional[datetime] = None
    check_in: datetime
    check_out: datetime
    room_type: Optional[str] = None
    room_quantity: int = Field(default=1, ge=1)
    guest_count: int = Field(default=1, ge=1)
    breakfast_status: Optional[str] = None
    total_amount: int = Field(default=0, ge=0)
    net_amount: int = Field(default=0, ge=0)
    payment_status: OtaPaymentStatus = OtaPaymentStatus.PAY_AT_HOTEL
    status: OtaOrderStatus = OtaOrderStatus.PENDING
    notes: Optional[str] = None


class OtaOrderResponse(OtaOrderImport):
    id: int
    assigned_room: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class OtaGroupInfoResponse(BaseModel):
    group_id: int
    index: int
    total: int


class GroupedOtaOrderResponse(OtaOrderResponse):
    group_info: Optional[OtaGroupInfoResponse] = None


class OtaOrderPage(BaseModel):
    data: List[GroupedOtaOrderResponse]
    has_more: bool


class OtaImportResult(BaseModel):
    created: int
    updated: int


class OtaAssignRequest(BaseModel):
    room_ids: List[int] = Field(..., min_length=1)
    strategy: CostSplitStrategy = CostSplitStrategy.GROUP


class OtaAssignResponse(BaseModel):
    order: OtaOrderResponse
    bookings: List[BookingResponse]


# ============== Housekeeping ==============

class HousekeepingTaskResponse(BaseModel):
    id: int
    facility_id: int
    room_code: str
    task_type: HousekeepingTaskType
    status: HousekeepingStatus
    assignee: Optional[str] = None
    priority: TaskPriority
    points: Optional[int] = None
    note: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class HousekeepingTaskUpdate(BaseModel):
    status: Optional[HousekeepingStatus] = None
    assignee: Optional[str] = None
    priority: Optional[TaskPriority] = None
    note: Optional[str] = None


class BulkTaskUpdate(BaseModel):
    task_ids: List[int] = Field(..., min_length=1)
    status: Optional[HousekeepingStatus] = None
    assignee: Optional[str] = None


class StayoverRequest(BaseModel):
    facility_id: int
    room_code: str
    accepted: bool                      # guest accepted daily cleaning


# ============== Inventory ==============

class ServiceItemBase(BaseModel):
    name: str = Field(..., max_length=100)
    price: int = Field(default=0, ge=0)
    cost_price: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    stock: int = 0
    min_stock: int = Field(default=0, ge=0)
    category: ServiceCategory = ServiceCategory.SERVICE
    laundry_stock: int = Field(default=0, ge=0)
    in_circulation: int = Field(default=0, ge=0)
    total_assets: int = Field(default=0, ge=0)
    default_qty: int = Field(default=0, ge=0)


class ServiceItemCreate(ServiceItemBase):
    pass


class ServiceItemUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    cost_price: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    stock: Optional[int] = None
    min_stock: Optional[int] = Field(None, ge=0)
    category: Optional[ServiceCategory] = None
    laundry_stock: Optional[int] = Field(None, ge=0)
    in_circulation: Optional[int] = Field(None, ge=0)
    total_assets: Optional[int] = Field(None, ge=0)
    default_qty: Optional[int] = Field(None, ge=0)


class ServiceItemResponse(ServiceItemBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


class BulkImportItem(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)
    import_price: int = Field(default=0, ge=0)


class BulkImportRequest(BaseModel):
    items: List[BulkImportItem] = Field(..., min_length=1)
    total_amount: int = Field(default=0, ge=0)
    facility_name: Optional[str] = None
    note: Optional[str] = None
    evidence_url: Optional[str] = None


class UsageItem(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)


class MinibarUsageRequest(BaseModel):
    facility_name: str
    room_code: str
    items: List[UsageItem] = Field(..., min_length=1)


class RestockItem(BaseModel):
    item_id: int
    dirty_return_qty: int = Field(default=0, ge=0)
    clean_restock_qty: int = Field(default=0, ge=0)


class RoomRestockRequest(BaseModel):
    items: List[RestockItem] = Field(..., min_length=1)


class InventoryTransactionResponse(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    type: InventoryTransactionType
    quantity: int
    price: int
    total: int
    staff_name: Optional[str] = None
    facility_name: Optional[str] = None
    note: Optional[str] = None
    evidence_url: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LaundryLine(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)
    damaged: int = Field(default=0, ge=0)      # only read on receive


class LaundryTicket(BaseModel):
    """Bulk laundry ticket, one line per item"""
    items: List[LaundryLine] = Field(..., min_length=1)
    facility_name: Optional[str] = None
    note: Optional[str] = None


class LiquidateRequest(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)
    facility_name: Optional[str] = None
    note: Optional[str] = None
    evidence_url: Optional[str] = None


class RecipeItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(..., validation_alias=AliasChoices("item_id", "itemId"))
    quantity: int = Field(..., gt=0)


class RoomRecipeUpsert(BaseModel):
    room_type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    items: List[RecipeItem] = []


class RoomRecipeResponse(RoomRecipeUpsert):
    id: int


class StandardInventoryEntry(BaseModel):
    item_id: int
    item_name: str
    unit: Optional[str] = None
    category: ServiceCategory
    required: int
    actual: int
    variance: int
    status: StandardStatus
    model_config = ConfigDict(from_attributes=True)


# ============== Webhooks ==============

class WebhookConfigCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    event_type: WebhookEventType
    is_active: bool = True
    description: Optional[str] = None


class WebhookConfigUpdate(BaseModel):
    url: Optional[str] = Field(None, min_length=1, max_length=500)
    event_type: Optional[WebhookEventType] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


class WebhookConfigResponse(WebhookConfigCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class WebhookDeliveryResponse(BaseModel):
    url: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


# ============== Guests: OCR & residence declaration ==============

class OcrRequest(BaseModel):
    image: str = Field(..., min_length=1)     # data URL or bare base64
    guests: List[GuestEntry] = []


class IdentityDocument(BaseModel):
    """Normalised identity document data"""
    is_vietnamese: bool = True
    full_name: str = ""
    dob: str = ""
    gender: str = ""
    nationality: str = "VNM"
    id_number: str = ""
    document_type: str = "CCCD"               # CCCD | Passport | Khác
    phone: str = ""
    province: str = ""
    district: str = ""
    ward: str = ""
    address_detail: str = ""
    reason: str = "Du lịch"
    residence_type: str = "Lưu trú"


class OcrScanResponse(BaseModel):
    document: IdentityDocument
    guests: List[GuestEntry]
    added: bool


class ResidenceDeclarationRequest(BaseModel):
    document: IdentityDocument
    guests: List[GuestEntry] = []
    rooms: Optional[List[str]] = None         # group declaration covers several rooms


class ResidenceDeclarationResponse(BaseModel):
    sheet_target: str
    payload: Dict[str, Any]
    profiles_saved: int
    deliveries: List[WebhookDeliveryResponse]


# ============== Payment QR ==============

class BankAccountCreate(BaseModel):
    bank_id: str
    account_no: str
    account_name: str
    template: str = "print"
    is_default: bool = False


class BankAccountResponse(BankAccountCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class BillPreview(BaseModel):
    booking_id: int
    room_code: str
    customer_name: str
    room_charge: int
    extra_fee: int
    services: List[ServiceUsage]
    total_revenue: int
    total_paid: int
    remaining: int
    qr_url: Optional[str] = None


# ============== Expenses ==============

class ExpenseBase(BaseModel):
    expense_date: datetime
    facility_name: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=50)
    content: str = Field(..., min_length=1, max_length=200)
    amount: int = Field(..., gt=0)
    note: Optional[str] = None


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    expense_date: Optional[datetime] = None
    facility_name: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    content: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[int] = Field(None, gt=0)
    note: Optional[str] = None


class ExpenseResponse(ExpenseBase):
    id: int
    created_by: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class ExpenseListResponse(BaseModel):
    items: List[ExpenseResponse]
    total: int


# ============== HR ==============

class LeaveRequestCreate(BaseModel):
    start_date: date
    end_date: date
    leave_type: str = "Annual"
    reason: Optional[str] = None

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, v, info):
        start = info.data.get("start_date")
        if start and v < start:
            raise ValueError("end_date cannot be before start_date")
        return v


class LeaveDecision(BaseModel):
    approve: bool
    note: Optional[str] = None


class LeaveRequestResponse(BaseModel):
    id: int
    staff_id: int
    start_date: date
    end_date: date
    leave_type: Optional[str] = None
    reason: Optional[str] = None
    status: LeaveStatus
    approver_note: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class SalaryAdvanceCreate(BaseModel):
    amount: int = Field(..., gt=0)
    reason: Optional[str] = None


class AdvanceDecision(BaseModel):
    approve: bool


class SalaryAdvanceResponse(BaseModel):
    id: int
    staff_id: int
    amount: int
    reason: Optional[str] = None
    status: SalaryAdvanceStatus
    request_date: datetime
    model_config = ConfigDict(from_attributes=True)


class ClockInRequest(BaseModel):
    facility_id: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class TimeLogResponse(BaseModel):
    id: int
    staff_id: int
    facility_id: int
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    status: TimeLogStatus
    distance: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)


class ShiftUpsert(BaseModel):
    staff_id: int
    date: date
    shift_type: ShiftType
    note: Optional[str] = None


class ShiftResponse(ShiftUpsert):
    id: int
    model_config = ConfigDict(from_attributes=True)


class ViolationCreate(BaseModel):
    staff_id: int
    violation_name: str = Field(..., min_length=1, max_length=200)
    fine_amount: int = Field(..., gt=0)
    evidence_url: Optional[str] = None
    date: Optional[datetime] = None


class ViolationResponse(BaseModel):
    id: int
    staff_id: int
    type: ViolationType
    violation_name: str
    fine_amount: int
    evidence_url: Optional[str] = None
    status: ViolationStatus
    date: datetime
    model_config = ConfigDict(from_attributes=True)


class AdjustmentUpsert(BaseModel):
    """Added to (or, when negative, taken from) the computed timesheet"""
    staff_id: int
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    standard_days_adj: float = 0
    ot_hours_adj: float = 0
    leave_days_adj: float = 0
    note: Optional[str] = None


class AdjustmentResponse(AdjustmentUpsert):
    id: int
    model_config = ConfigDict(from_attributes=True)


class TimesheetEntry(BaseModel):
    staff_id: int
    staff_name: str
    standard_days: float
    day_shifts: int
    night_shifts: int
    late_count: int
    late_minutes: int
    ot_hours: float
    leave_days: float
    salary: int
    commission: int


# ============== Reports ==============

class RoomMapEntry(BaseModel):
    room_id: int
    room_name: str
    room_status: RoomStatus
    display_status: str
    booking_id: Optional[int] = None
    customer_name: Optional[str] = None
    next_booking_id: Optional[int] = None
    next_check_in: Optional[datetime] = None
    has_services: bool = False
    has_lending: bool = False


class FacilityRoomMap(BaseModel):
    facility_id: int
    facility_name: str
    rooms: List[RoomMapEntry]


class RoomStatsResponse(BaseModel):
    total: int
    available: int
    occupied: int
    dirty: int
    incoming: int
    outgoing: int


class DailyReport(BaseModel):
    date: date
    revenue: int
    checkin: int
    checkout: int
    occupancy: str
    dirty_rooms: int
    pending_ota: int
    staff_absent: int
