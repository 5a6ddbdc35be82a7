"""
Seed a fresh database

Default accounts (password 123456):
  admin      Admin
  manager    Quản lý
  reception  Lễ tân
  cleaner    Buồng phòng

Run with: python -m hotelops.init_data
"""
from hotelops.database import SessionLocal, init_db
from hotelops.models.ontology import (
    Facility, Room, RoomStatus, ServiceCategory, ServiceItem, Staff, StaffRole
)
from hotelops.security.auth import get_password_hash

DEFAULT_PASSWORD = "123456"


def init_staff(db):
    accounts = [
        ("admin", "Admin", StaffRole.ADMIN),
        ("manager", "Quản lý", StaffRole.MANAGER),
        ("reception", "Lễ tân", StaffRole.STAFF),
        ("cleaner", "Buồng phòng", StaffRole.HOUSEKEEPING),
    ]
    for username, name, role in accounts:
        if db.query(Staff).filter(Staff.username == username).first():
            continue
        db.add(Staff(
            username=username,
            password_hash=get_password_hash(DEFAULT_PASSWORD),
            name=name,
            role=role
        ))
    db.commit()


def init_facilities(db):
    facilities = [
        ("Tuan Chau", 500000, 600000, ["101", "102", "103", "201", "202"]),
        ("Bai Chay", 400000, 450000, ["A1", "A2", "A3"]),
    ]
    for name, price, price_saturday, room_names in facilities:
        facility = db.query(Facility).filter(Facility.name == name).first()
        if not facility:
            facility = Facility(name=name, price=price, price_saturday=price_saturday)
            db.add(facility)
            db.flush()
        for room_name in room_names:
            exists = db.query(Room).filter(
                Room.facility_id == facility.id, Room.name == room_name
            ).first()
            if not exists:
                db.add(Room(facility_id=facility.id, name=room_name, status=RoomStatus.CLEAN))
    db.commit()


def init_service_items(db):
    items = [
        ("Nước suối", 15000, 5000, "chai", ServiceCategory.MINIBAR, 100, 20),
        ("Bia Hà Nội", 25000, 12000, "lon", ServiceCategory.MINIBAR, 100, 20),
        ("Bàn chải", 0, 3000, "cái", ServiceCategory.AMENITY, 200, 50),
        ("Khăn tắm", 0, 60000, "cái", ServiceCategory.LINEN, 80, 20),
        ("Giặt ủi", 50000, 0, "lần", ServiceCategory.SERVICE, 0, 0),
    ]
    for name, price, cost_price, unit, category, stock, min_stock in items:
        if db.query(ServiceItem).filter(ServiceItem.name == name).first():
            continue
        db.add(ServiceItem(
            name=name, price=price, cost_price=cost_price, unit=unit, category=category,
            stock=stock, min_stock=min_stock,
            total_assets=stock if category in (ServiceCategory.LINEN, ServiceCategory.ASSET) else 0
        ))
    db.commit()


def main():
    init_db()
    db = SessionLocal()
    try:
        init_staff(db)
        init_facilities(db)
        init_service_items(db)
        print("Database initialised")
    finally:
        db.close()


if __name__ == "__main__":
    main()
