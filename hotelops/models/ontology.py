"""
Persistent domain objects
Facilities own rooms; bookings reference a room by facility name + room code.
Money is stored as integer VND.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date,
    ForeignKey, Text, Enum as SQLEnum, Boolean, UniqueConstraint
)
from sqlalchemy.orm import relationship
from hotelops.database import Base


# ============== Enums ==============

class RoomStatus(str, Enum):
    """Room housekeeping status"""
    CLEAN = "clean"            # Đã dọn
    DIRTY = "dirty"            # Bẩn
    CLEANING = "cleaning"      # Đang dọn
    REPAIR = "repair"          # Sửa chữa


class BookingStatus(str, Enum):
    """Booking lifecycle status"""
    CONFIRMED = "Confirmed"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    """Payment method of a ledger entry"""
    CASH = "Cash"
    TRANSFER = "Transfer"
    CARD = "Card"
    OTHER = "Other"


class ServiceCategory(str, Enum):
    """Service item category"""
    MINIBAR = "Minibar"
    AMENITY = "Amenity"
    LINEN = "Linen"
    VOUCHER = "Voucher"
    SERVICE = "Service"
    ASSET = "Asset"


# Categories loaned to guests instead of billed
LENDING_CATEGORIES = (ServiceCategory.LINEN, ServiceCategory.ASSET)


class InventoryTransactionType(str, Enum):
    """Inventory movement type"""
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"
    LAUNDRY_SEND = "LAUNDRY_SEND"
    LAUNDRY_RECEIVE = "LAUNDRY_RECEIVE"
    MINIBAR_SOLD = "MINIBAR_SOLD"
    AMENITY_USED = "AMENITY_USED"


class OtaOrderStatus(str, Enum):
    """OTA order status"""
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    CANCELLED = "Cancelled"      # cancelled by the platform, awaiting confirmation
    CONFIRMED = "Confirmed"      # cancellation acknowledged by staff


class OtaPaymentStatus(str, Enum):
    """Who collects the OTA payment"""
    PREPAID = "Prepaid"
    PAY_AT_HOTEL = "Pay at hotel"


class HousekeepingTaskType(str, Enum):
    """Housekeeping task type"""
    CHECKOUT = "Checkout"
    STAYOVER = "Stayover"
    DIRTY = "Dirty"
    VACANT = "Vacant"


class HousekeepingStatus(str, Enum):
    """Housekeeping task status"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class TaskPriority(str, Enum):
    """Housekeeping task priority"""
    HIGH = "High"
    NORMAL = "Normal"
    LOW = "Low"


class WebhookEventType(str, Enum):
    """Outbound webhook event"""
    CHECKOUT = "checkout"
    HOUSEKEEPING_ASSIGN = "housekeeping_assign"
    RESIDENCE_DECLARATION = "residence_declaration"
    LEAVE_UPDATE = "leave_update"
    OTA_IMPORT = "ota_import"
    GENERAL_NOTIFICATION = "general_notification"


class StaffRole(str, Enum):
    """Staff role"""
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    INVESTOR = "investor"
    HOUSEKEEPING = "housekeeping"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class SalaryAdvanceStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"


class TimeLogStatus(str, Enum):
    """Geofence verdict of a clock-in"""
    VALID = "Valid"
    INVALID = "Invalid"
    PENDING = "Pending"


class ShiftType(str, Enum):
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    NIGHT = "Night"
    OFF = "OFF"


class ViolationType(str, Enum):
    MANUAL = "Manual"
    SYSTEM = "System"


class ViolationStatus(str, Enum):
    PENDING_DEDUCTION = "Pending_Deduction"
    DEDUCTED = "Deducted"


# ============== Property ==============

class Facility(Base):
    """
    Facility (branch / property)
    Holds default pricing and the GPS point used for staff geofencing
    """
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    price = Column(Integer, default=0)                # default weekday price
    price_saturday = Column(Integer, default=0)       # default Saturday price
    note = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    allowed_radius = Column(Integer)                  # metres
    created_at = Column(DateTime, default=datetime.utcnow)

    rooms = relationship("Room", back_populates="facility", cascade="all, delete-orphan")


class Room(Base):
    """Room - belongs to exactly one facility"""
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("facility_id", "name", name="uq_room_facility_name"),)

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False)
    name = Column(String(20), nullable=False)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.CLEAN)
    price = Column(Integer)
    price_saturday = Column(Integer)
    room_type = Column(String(50))
    view = Column(String(50))
    area = Column(Float)
    note = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    facility = relationship("Facility", back_populates="rooms")


# ============== Bookings ==============

class Booking(Base):
    """
    Booking - one room for one date range
    Sub-ledgers (payments, services, lending, guests) are JSON text columns,
    read and written only through hotelops.services.ledger.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    facility_name = Column(String(100), nullable=False, index=True)
    room_code = Column(String(20), nullable=False, index=True)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30))
    source = Column(String(50))                       # Walk-in, Booking.com, Agoda ...
    collaborator = Column(String(100))
    payment_method = Column(String(30))               # pricing mode, e.g. "Theo ngày" / "Theo giờ"
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.CONFIRMED, index=True)
    actual_check_in = Column(DateTime)
    actual_check_out = Column(DateTime)

    price = Column(Integer, default=0)
    extra_fee = Column(Integer, default=0)
    total_revenue = Column(Integer, default=0)
    remaining_amount = Column(Integer, default=0)
    note = Column(Text, default="")

    payments_json = Column(Text, default="[]")
    services_json = Column(Text, default="[]")
    lending_json = Column(Text, default="[]")
    guests_json = Column(Text, default="[]")
    is_declared = Column(Boolean, default=False)

    group_id = Column(String(64), index=True)
    group_name = Column(String(100))
    is_group_leader = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class GuestProfile(Base):
    """Residence declaration history, one row per declared guest"""
    __tablename__ = "guest_profiles"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    dob = Column(String(20))
    gender = Column(String(10))
    nationality = Column(String(50))
    id_card_number = Column(String(50), index=True)
    card_type = Column(String(30))
    address = Column(Text)
    phone = Column(String(30))
    booking_id = Column(Integer, ForeignKey("bookings.id"))
    staff_id = Column(Integer, ForeignKey("staff.id"))
    raw_data = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


# ============== Inventory ==============

class ServiceItem(Base):
    """Billable service or lendable asset with stock tracking"""
    __tablename__ = "service_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Integer, default=0)                # sale price
    cost_price = Column(Integer, default=0)           # latest import price
    unit = Column(String(20))
    stock = Column(Integer, default=0)                # clean stock in store
    min_stock = Column(Integer, default=0)
    category = Column(SQLEnum(ServiceCategory), default=ServiceCategory.SERVICE)
    laundry_stock = Column(Integer, default=0)        # dirty, waiting for laundry
    in_circulation = Column(Integer, default=0)       # lent to rooms
    total_assets = Column(Integer, default=0)
    default_qty = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class RoomRecipe(Base):
    """Standard set of linen and supplies for one room type"""
    __tablename__ = "room_recipes"

    id = Column(Integer, primary_key=True, index=True)
    room_type = Column(String(50), unique=True, nullable=False)
    description = Column(String(200))
    items_json = Column(Text, default="[]")           # [{"item_id": 1, "quantity": 2}]


class InventoryTransaction(Base):
    """Inventory movement log"""
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("service_items.id"), nullable=False)
    item_name = Column(String(100))
    type = Column(SQLEnum(InventoryTransactionType), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, default=0)
    total = Column(Integer, default=0)
    staff_id = Column(Integer, ForeignKey("staff.id"))
    staff_name = Column(String(100))
    facility_name = Column(String(100))
    note = Column(Text)
    evidence_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)


# ============== OTA ==============

class OtaOrder(Base):
    """Reservation imported from an online travel agency, awaiting room assignment"""
    __tablename__ = "ota_orders"
    __table_args__ = (UniqueConstraint("platform", "booking_code", name="uq_ota_platform_code"),)

    id = Column(Integer, primary_key=True, index=True)
    platform = Column(String(50), nullable=False)
    booking_code = Column(String(64), nullable=False, index=True)
    guest_name = Column(String(100), nullable=False)
    guest_phone = Column(String(30))
    email_date = Column(DateTime)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    room_type = Column(String(100))
    room_quantity = Column(Integer, default=1)
    guest_count = Column(Integer, default=1)
    breakfast_status = Column(String(50))
    total_amount = Column(Integer, default=0)
    net_amount = Column(Integer, default=0)
    payment_status = Column(SQLEnum(OtaPaymentStatus), default=OtaPaymentStatus.PAY_AT_HOTEL)
    status = Column(SQLEnum(OtaOrderStatus), default=OtaOrderStatus.PENDING, index=True)
    assigned_room = Column(String(200))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


# ============== Housekeeping ==============

class HousekeepingTask(Base):
    """Cleaning work item, created and closed as a side effect of room transitions"""
    __tablename__ = "housekeeping_tasks"

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False)
    room_code = Column(String(20), nullable=False)
    task_type = Column(SQLEnum(HousekeepingTaskType), nullable=False)
    status = Column(SQLEnum(HousekeepingStatus), default=HousekeepingStatus.PENDING)
    assignee = Column(String(100))
    priority = Column(SQLEnum(TaskPriority), default=TaskPriority.NORMAL)
    points = Column(Integer, default=1)
    note = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)

    facility = relationship("Facility")


# ============== Integrations ==============

class WebhookConfig(Base):
    """Outbound webhook target"""
    __tablename__ = "webhook_configs"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String(500), nullable=False)
    event_type = Column(SQLEnum(WebhookEventType), nullable=False)
    is_active = Column(Boolean, default=True)
    description = Column(String(200))
    created_at = Column(DateTime, default=datetime.utcnow)


class BankAccount(Base):
    """Receiving bank account used for VietQR payment images"""
    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True, index=True)
    bank_id = Column(String(20), nullable=False)
    account_no = Column(String(50), nullable=False)
    account_name = Column(String(100), nullable=False)
    template = Column(String(20), default="print")
    is_default = Column(Boolean, default=False)


# ============== Staff & HR ==============

class Staff(Base):
    """Staff member / login account"""
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(SQLEnum(StaffRole), nullable=False, default=StaffRole.STAFF)
    phone = Column(String(30))
    managed_facilities = Column(Text)                 # comma separated facility names
    bank_id = Column(String(20))
    bank_account_no = Column(String(50))
    bank_account_name = Column(String(100))
    base_salary = Column(Integer, default=0)
    commission_rate = Column(Float, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Expense(Base):
    """Operating expense"""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    expense_date = Column(DateTime, nullable=False, default=datetime.now)
    facility_name = Column(String(100))
    category = Column(String(50), nullable=False)
    content = Column(String(200), nullable=False)
    amount = Column(Integer, nullable=False)
    note = Column(Text)
    created_by = Column(Integer, ForeignKey("staff.id"))
    created_at = Column(DateTime, default=datetime.utcnow)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    leave_type = Column(String(50))
    reason = Column(Text)
    status = Column(SQLEnum(LeaveStatus), default=LeaveStatus.PENDING)
    approver_note = Column(Text)
    approved_by = Column(Integer, ForeignKey("staff.id"))
    created_at = Column(DateTime, default=datetime.utcnow)

    staff = relationship("Staff", foreign_keys=[staff_id])


class SalaryAdvance(Base):
    __tablename__ = "salary_advances"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    amount = Column(Integer, nullable=False)
    reason = Column(Text)
    status = Column(SQLEnum(SalaryAdvanceStatus), default=SalaryAdvanceStatus.PENDING)
    request_date = Column(DateTime, default=datetime.now)

    staff = relationship("Staff")


class Violation(Base):
    """Fine recorded against a staff member, deducted from that month's pay"""
    __tablename__ = "violations"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False, index=True)
    type = Column(SQLEnum(ViolationType), default=ViolationType.MANUAL)
    violation_name = Column(String(200), nullable=False)
    fine_amount = Column(Integer, nullable=False)
    evidence_url = Column(String(500))
    status = Column(SQLEnum(ViolationStatus), default=ViolationStatus.PENDING_DEDUCTION)
    date = Column(DateTime, nullable=False, default=datetime.now)
    created_by = Column(Integer, ForeignKey("staff.id"))
    created_at = Column(DateTime, default=datetime.utcnow)


class AttendanceAdjustment(Base):
    """Manual corrections added on top of the computed timesheet"""
    __tablename__ = "attendance_adjustments"
    __table_args__ = (UniqueConstraint("staff_id", "month", name="uq_adjustment_staff_month"),)

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    month = Column(String(7), nullable=False)          # YYYY-MM
    standard_days_adj = Column(Float, default=0)
    ot_hours_adj = Column(Float, default=0)
    leave_days_adj = Column(Float, default=0)
    note = Column(Text)

class TimeLog(Base):
    """Attendance clock-in / clock-out"""
    __tablename__ = "time_logs"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False)
    check_in_time = Column(DateTime, nullable=False)
    check_out_time = Column(DateTime)
    status = Column(SQLEnum(TimeLogStatus), default=TimeLogStatus.PENDING)
    location_lat = Column(Float)
    location_lng = Column(Float)
    distance = Column(Float)


class ShiftSchedule(Base):
    __tablename__ = "shift_schedules"
    __table_args__ = (UniqueConstraint("staff_id", "date", name="uq_shift_staff_date"),)

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    date = Column(Date, nullable=False)
    shift_type = Column(SQLEnum(ShiftType), nullable=False)
    note = Column(Text)
