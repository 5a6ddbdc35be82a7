"""
Booking endpoints, end to end through the HTTP layer
"""
from datetime import timedelta


def _booking_payload(tomorrow, **overrides):
    payload = {
        "facility_name": "Tuan Chau",
        "room_code": "101",
        "customer_name": "Tran Thi B",
        "customer_phone": "0900000001",
        "check_in": tomorrow.isoformat(),
        "check_out": (tomorrow + timedelta(days=1)).isoformat(),
        "price": 800000,
    }
    payload.update(overrides)
    return payload


class TestBookingFlow:

    def test_create_pay_check_in_check_out(self, client, staff_headers, room_101, tomorrow):
        response = client.post("/bookings", json=_booking_payload(tomorrow), headers=staff_headers)
        assert response.status_code == 200
        booking = response.json()
        assert booking["status"] == "Confirmed"
        assert booking["remaining_amount"] == 800000
        booking_id = booking["id"]

        response = client.post(f"/bookings/{booking_id}/check-in", json={}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "CheckedIn"

        # open balance blocks check-out
        response = client.post(f"/bookings/{booking_id}/check-out", json={}, headers=staff_headers)
        assert response.status_code == 400
        assert "unpaid balance" in response.json()["detail"]

        response = client.post(f"/bookings/{booking_id}/payments",
                               json={"amount": 800000, "method": "Cash"}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["remaining_amount"] == 0

        response = client.post(f"/bookings/{booking_id}/check-out", json={}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "CheckedOut"

        room = client.get(f"/rooms/{room_101.id}", headers=staff_headers).json()
        assert room["status"] == "dirty"

        tasks = client.get("/housekeeping/tasks", headers=staff_headers).json()
        assert [t["room_code"] for t in tasks] == ["101"]
        assert tasks[0]["task_type"] == "Checkout"

    def test_overlapping_booking_rejected(self, client, staff_headers, confirmed_booking, tomorrow):
        response = client.post("/bookings", json=_booking_payload(tomorrow), headers=staff_headers)
        assert response.status_code == 400

    def test_back_to_back_booking_accepted(self, client, staff_headers, confirmed_booking, tomorrow):
        payload = _booking_payload(
            tomorrow,
            check_in=confirmed_booking.check_out.isoformat(),
            check_out=(confirmed_booking.check_out + timedelta(days=1)).isoformat(),
        )
        response = client.post("/bookings", json=payload, headers=staff_headers)
        assert response.status_code == 200

    def test_availability(self, client, staff_headers, confirmed_booking, tomorrow):
        params = {
            "facility_name": "Tuan Chau",
            "room_code": "101",
            "check_in": tomorrow.isoformat(),
            "check_out": (tomorrow + timedelta(days=1)).isoformat(),
        }
        body = client.get("/bookings/availability", params=params, headers=staff_headers).json()
        assert body == {"available": False, "conflicts": [confirmed_booking.id]}

        params["exclude_id"] = confirmed_booking.id
        body = client.get("/bookings/availability", params=params, headers=staff_headers).json()
        assert body["available"] is True

    def test_cancel(self, client, staff_headers, confirmed_booking):
        response = client.post(f"/bookings/{confirmed_booking.id}/cancel",
                               json={"reason": "Guest changed plans"}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"

        response = client.post(f"/bookings/{confirmed_booking.id}/check-in", json={}, headers=staff_headers)
        assert response.status_code == 400

    def test_list_by_status(self, client, staff_headers, confirmed_booking):
        confirmed = client.get("/bookings", params={"status": "Confirmed"}, headers=staff_headers).json()
        checked_in = client.get("/bookings", params={"status": "CheckedIn"}, headers=staff_headers).json()
        assert [b["id"] for b in confirmed] == [confirmed_booking.id]
        assert checked_in == []

    def test_bill_preview_without_bank_account(self, client, staff_headers, confirmed_booking):
        body = client.get(f"/bookings/{confirmed_booking.id}/bill", headers=staff_headers).json()
        assert body["remaining"] == 1000000
        assert body["qr_url"] is None


class TestBookingErrors:

    def test_unknown_booking_is_404(self, client, staff_headers):
        assert client.get("/bookings/9999", headers=staff_headers).status_code == 404

    def test_payment_on_unknown_booking_is_404(self, client, staff_headers):
        response = client.post("/bookings/9999/payments", json={"amount": 1000}, headers=staff_headers)
        assert response.status_code == 404

    def test_unknown_room_rejected(self, client, staff_headers, room_101, tomorrow):
        response = client.post("/bookings", json=_booking_payload(tomorrow, room_code="999"),
                               headers=staff_headers)
        assert response.status_code in (400, 404)
