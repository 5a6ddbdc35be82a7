"""
Pytest configuration and shared fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from hotelops.database import Base, get_db  # noqa: E402
from hotelops.models import ontology  # noqa: E402,F401
from hotelops.models.ontology import (  # noqa: E402
    Booking, BookingStatus, Facility, Room, RoomStatus, ServiceCategory, ServiceItem,
    Staff, StaffRole
)
from hotelops.security.auth import get_password_hash, create_access_token  # noqa: E402
from hotelops.services.event_bus import event_bus  # noqa: E402
from hotelops.services.event_handlers import EventHandlers  # noqa: E402
from hotelops.main import app  # noqa: E402


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def events():
    """Collects published events instead of sending them to the bus"""
    return []


@pytest.fixture
def publisher(events):
    return events.append


@pytest.fixture(scope="function")
def client(db_session, session_factory):
    """Test client; events reach webhook handlers bound to the test database"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        event_bus.clear_subscribers()
        handlers = EventHandlers(db_session_factory=session_factory)
        handlers.register_handlers()
        yield test_client
        event_bus.clear_subscribers()
    app.dependency_overrides.clear()


# ============== Auth ==============

def _make_staff(db_session, username, name, role, **kwargs):
    staff = Staff(
        username=username,
        password_hash=get_password_hash("123456"),
        name=name,
        role=role,
        is_active=True,
        **kwargs
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


@pytest.fixture
def admin(db_session):
    return _make_staff(db_session, "admin", "Admin", StaffRole.ADMIN)


@pytest.fixture
def manager(db_session):
    return _make_staff(db_session, "manager", "Manager Lan", StaffRole.MANAGER)


@pytest.fixture
def receptionist(db_session):
    return _make_staff(db_session, "reception", "Reception Minh", StaffRole.STAFF,
                       bank_id="VCB", bank_account_no="0011", bank_account_name="NGUYEN MINH")


@pytest.fixture
def cleaner(db_session):
    return _make_staff(db_session, "cleaner", "Cleaner Hoa", StaffRole.HOUSEKEEPING)


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(admin.id, admin.role)}"}


@pytest.fixture
def manager_headers(manager):
    return {"Authorization": f"Bearer {create_access_token(manager.id, manager.role)}"}


@pytest.fixture
def staff_headers(receptionist):
    return {"Authorization": f"Bearer {create_access_token(receptionist.id, receptionist.role)}"}


@pytest.fixture
def cleaner_headers(cleaner):
    return {"Authorization": f"Bearer {create_access_token(cleaner.id, cleaner.role)}"}


# ============== Property ==============

@pytest.fixture
def facility(db_session):
    facility = Facility(name="Tuan Chau", price=500000, price_saturday=600000,
                        latitude=20.93, longitude=107.0, allowed_radius=100)
    db_session.add(facility)
    db_session.commit()
    db_session.refresh(facility)
    return facility


@pytest.fixture
def other_facility(db_session):
    facility = Facility(name="Bai Chay", price=400000, price_saturday=450000)
    db_session.add(facility)
    db_session.commit()
    db_session.refresh(facility)
    return facility


def _make_room(db_session, facility, name, price=None, status=RoomStatus.CLEAN):
    room = Room(facility_id=facility.id, name=name, price=price, status=status)
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def room_101(db_session, facility):
    return _make_room(db_session, facility, "101")


@pytest.fixture
def room_102(db_session, facility):
    return _make_room(db_session, facility, "102")


@pytest.fixture
def room_103(db_session, facility):
    return _make_room(db_session, facility, "103", price=300000)


@pytest.fixture
def room_a1(db_session, other_facility):
    return _make_room(db_session, other_facility, "A1", price=150000)


@pytest.fixture
def minibar_item(db_session):
    item = ServiceItem(name="Nước suối", price=15000, cost_price=5000, unit="chai",
                       category=ServiceCategory.MINIBAR, stock=10, min_stock=2)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def towel_item(db_session):
    item = ServiceItem(name="Khăn tắm", price=0, cost_price=60000, unit="cái",
                       category=ServiceCategory.LINEN, stock=20, total_assets=20)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def tomorrow():
    return (datetime.now() + timedelta(days=1)).replace(hour=14, minute=0, second=0, microsecond=0)


@pytest.fixture
def confirmed_booking(db_session, room_101, tomorrow):
    """Two nights in Tuan Chau 101, nothing paid"""
    booking = Booking(
        facility_name="Tuan Chau",
        room_code="101",
        customer_name="Nguyen Van A",
        check_in=tomorrow,
        check_out=tomorrow + timedelta(days=2),
        status=BookingStatus.CONFIRMED,
        price=1000000,
        extra_fee=0,
        total_revenue=1000000,
        remaining_amount=1000000,
        note=""
    )
    db_session.add(booking)
    db_session.commit()
    db_session.refresh(booking)
    return booking
