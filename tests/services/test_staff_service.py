"""
Staff service and token tests
"""
import pytest
from fastapi import HTTPException

from hotelops.models.ontology import StaffRole
from hotelops.models.schemas import StaffCreate, StaffUpdate
from hotelops.security.auth import decode_token, verify_password
from hotelops.services.staff_service import StaffService


@pytest.fixture
def service(db_session):
    return StaffService(db_session)


class TestStaffAccounts:

    def test_password_is_hashed(self, service):
        staff = service.create_staff(StaffCreate(username="lan", name="Lan", password="secret1"))

        assert staff.password_hash != "secret1"
        assert verify_password("secret1", staff.password_hash)

    def test_duplicate_username(self, service, receptionist):
        with pytest.raises(ValueError, match="already exists"):
            service.create_staff(StaffCreate(username="reception", name="Other", password="secret1"))

    def test_filter_by_role(self, service, receptionist, cleaner):
        assert [s.username for s in service.get_staff_list(role=StaffRole.HOUSEKEEPING)] == ["cleaner"]

    def test_last_admin_cannot_be_demoted(self, service, admin):
        with pytest.raises(ValueError, match="active admin"):
            service.update_staff(admin.id, StaffUpdate(role=StaffRole.MANAGER))
        with pytest.raises(ValueError, match="active admin"):
            service.update_staff(admin.id, StaffUpdate(is_active=False))

    def test_admin_can_be_demoted_when_another_exists(self, service, admin):
        service.create_staff(StaffCreate(username="admin2", name="Admin 2", password="secret1",
                                         role=StaffRole.ADMIN))
        assert service.update_staff(admin.id, StaffUpdate(role=StaffRole.MANAGER)).role == StaffRole.MANAGER


class TestAuthenticate:

    def test_valid_credentials(self, service, receptionist):
        result = service.authenticate("reception", "123456")

        payload = decode_token(result["access_token"])
        assert payload["sub"] == str(receptionist.id)
        assert payload["role"] == "staff"
        assert result["staff"].id == receptionist.id

    def test_wrong_password(self, service, receptionist):
        assert service.authenticate("reception", "wrong") is None
        assert service.authenticate("nobody", "123456") is None

    def test_disabled_account(self, service, receptionist):
        service.update_staff(receptionist.id, StaffUpdate(is_active=False))
        with pytest.raises(ValueError, match="disabled"):
            service.authenticate("reception", "123456")


def test_tampered_token_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        decode_token("not-a-token")
    assert exc_info.value.status_code == 401
