"""
Listed price tests
"""
from datetime import datetime
from types import SimpleNamespace

from hotelops.domain.pricing import calculate_nights, stay_price, unit_price_for_date

FACILITY = SimpleNamespace(price=500000, price_saturday=600000)
FRIDAY = datetime(2026, 3, 6, 14)
SATURDAY = datetime(2026, 3, 7, 14)


def room(price=None, price_saturday=None):
    return SimpleNamespace(price=price, price_saturday=price_saturday)


class TestUnitPrice:

    def test_weekday_uses_room_then_facility(self):
        assert unit_price_for_date(FACILITY, room(300000), FRIDAY) == 300000
        assert unit_price_for_date(FACILITY, room(), FRIDAY) == 500000

    def test_saturday_prefers_saturday_rates(self):
        assert unit_price_for_date(FACILITY, room(300000, 350000), SATURDAY) == 350000
        assert unit_price_for_date(FACILITY, room(300000), SATURDAY) == 600000

    def test_saturday_falls_back_to_weekday_rate(self):
        facility = SimpleNamespace(price=500000, price_saturday=None)
        assert unit_price_for_date(facility, room(300000), SATURDAY) == 300000

    def test_missing_facility(self):
        assert unit_price_for_date(None, room(300000), FRIDAY) == 0


class TestStayPrice:

    def test_nights_are_calendar_days(self):
        assert calculate_nights(datetime(2026, 3, 6, 23), datetime(2026, 3, 7, 1)) == 1
        assert calculate_nights(FRIDAY, datetime(2026, 3, 9, 12)) == 3

    def test_same_day_stay_is_one_night(self):
        assert calculate_nights(FRIDAY, FRIDAY) == 1

    def test_stay_price_uses_check_in_day_rate(self):
        assert stay_price(FACILITY, room(), SATURDAY, datetime(2026, 3, 9, 12)) == 1200000
