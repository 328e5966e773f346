"""
Tests for event scans: scan type settings, recording scans, history and stats.
"""
import pytest

from app.core.errors import CorruptSettingError, ValidationError
from app.db.postgres import get_db_session
from app.schemas.schemas import ScanType
from app.services.settings_service import SettingsStore, SETTINGS_KEY_SCAN_TYPES


SCAN_TYPES = [
    {"name": "check_in", "display_name": "Check In", "category": "check_in", "is_active": True},
    {"name": "lunch_day1", "display_name": "Lunch Day 1", "category": "meal", "is_active": True},
    {"name": "tshirt", "display_name": "T-Shirt", "category": "swag", "is_active": True},
    {"name": "dinner_day2", "display_name": "Dinner Day 2", "category": "meal", "is_active": False},
]


@pytest.fixture
def staff(create_user):
    return create_user("staff@test.com", "admin")


@pytest.fixture
def attendee(create_user):
    return create_user("attendee@test.com")


@pytest.fixture
def scan_types():
    with get_db_session() as db:
        SettingsStore(db).update_scan_types([ScanType(**st) for st in SCAN_TYPES])


@pytest.fixture
def scan(client, staff, auth_headers):
    """Factory: scan(user_id, scan_type) -> response."""
    def _scan(user_id: str, scan_type: str):
        return client.post(
            "/api/admin/scans", headers=auth_headers(staff),
            json={"user_id": user_id, "scan_type": scan_type}
        )
    return _scan


class TestScanTypeSettings:

    def test_unset_is_empty(self):
        with get_db_session() as db:
            assert SettingsStore(db).get_scan_types() == []

    def test_duplicate_names_rejected(self):
        types = [ScanType(**SCAN_TYPES[0]), ScanType(**SCAN_TYPES[0])]
        with pytest.raises(ValidationError, match="duplicate scan type name"):
            with get_db_session() as db:
                SettingsStore(db).update_scan_types(types)

    def test_check_in_type_required(self):
        with pytest.raises(ValidationError, match="check_in"):
            with get_db_session() as db:
                SettingsStore(db).update_scan_types([ScanType(**SCAN_TYPES[1])])

    def test_corrupt_document(self):
        with get_db_session() as db:
            SettingsStore(db).upsert(SETTINGS_KEY_SCAN_TYPES, '{"check_in": true}')

        with pytest.raises(CorruptSettingError):
            with get_db_session() as db:
                SettingsStore(db).get_scan_types()

    def test_super_admin_replaces_list(self, client, create_user, auth_headers, staff):
        super_id = create_user("super@test.com", "super_admin")

        response = client.put(
            "/api/superadmin/settings/scan-types", headers=auth_headers(super_id),
            json={"scan_types": SCAN_TYPES}
        )
        assert response.status_code == 200
        assert [st["name"] for st in response.json()["scan_types"]] == [st["name"] for st in SCAN_TYPES]

        listed = client.get("/api/admin/scans/types", headers=auth_headers(staff)).json()
        assert listed == response.json()

    def test_super_admin_update_without_check_in(self, client, create_user, auth_headers):
        super_id = create_user("super@test.com", "super_admin")
        response = client.put(
            "/api/superadmin/settings/scan-types", headers=auth_headers(super_id),
            json={"scan_types": SCAN_TYPES[1:3]}
        )
        assert response.status_code == 400

    def test_unknown_category_rejected(self, client, create_user, auth_headers):
        super_id = create_user("super@test.com", "super_admin")
        bad = dict(SCAN_TYPES[0], category="parking")
        response = client.put(
            "/api/superadmin/settings/scan-types", headers=auth_headers(super_id), json={"scan_types": [bad]}
        )
        assert response.status_code == 422

    def test_admin_cannot_update(self, client, staff, auth_headers):
        response = client.put(
            "/api/superadmin/settings/scan-types", headers=auth_headers(staff), json={"scan_types": SCAN_TYPES}
        )
        assert response.status_code == 403


@pytest.mark.usefixtures("scan_types")
class TestCreateScan:

    def test_check_in(self, scan, staff, attendee):
        response = scan(attendee, "check_in")

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == attendee
        assert data["scan_type"] == "check_in"
        assert data["scanned_by"] == staff

    def test_unknown_type(self, scan, attendee):
        response = scan(attendee, "breakfast")
        assert response.status_code == 400
        assert response.json()["detail"] == "invalid scan type: breakfast"

    def test_inactive_type(self, scan, attendee):
        scan(attendee, "check_in")
        response = scan(attendee, "dinner_day2")
        assert response.status_code == 400
        assert response.json()["detail"] == "scan type is not active: dinner_day2"

    def test_claim_before_check_in_forbidden(self, scan, attendee):
        response = scan(attendee, "lunch_day1")
        assert response.status_code == 403
        assert response.json()["detail"] == "user must check in before claiming items"

    def test_claim_after_check_in(self, scan, attendee):
        scan(attendee, "check_in")
        assert scan(attendee, "lunch_day1").status_code == 201
        assert scan(attendee, "tshirt").status_code == 201

    def test_duplicate_scan_conflicts(self, scan, attendee):
        scan(attendee, "check_in")
        response = scan(attendee, "check_in")
        assert response.status_code == 409
        assert response.json()["detail"] == "user already scanned for: check_in"

    def test_unknown_attendee(self, scan):
        assert scan("no-such-user", "check_in").status_code == 404

    def test_hacker_cannot_scan(self, client, attendee, auth_headers):
        response = client.post(
            "/api/admin/scans", headers=auth_headers(attendee),
            json={"user_id": attendee, "scan_type": "check_in"}
        )
        assert response.status_code == 403


@pytest.mark.usefixtures("scan_types")
class TestScanHistory:

    def test_user_scans_newest_first(self, client, scan, staff, attendee, auth_headers):
        scan(attendee, "check_in")
        scan(attendee, "lunch_day1")
        scan(attendee, "tshirt")

        scans = client.get(f"/api/admin/scans/user/{attendee}", headers=auth_headers(staff)).json()["scans"]
        assert [s["scan_type"] for s in scans] == ["tshirt", "lunch_day1", "check_in"]

    def test_user_without_scans(self, client, staff, attendee, auth_headers):
        response = client.get(f"/api/admin/scans/user/{attendee}", headers=auth_headers(staff))
        assert response.json() == {"scans": []}

    def test_stats_per_type(self, client, scan, staff, create_user, auth_headers):
        first = create_user("a1@test.com")
        second = create_user("a2@test.com")
        for user_id in (first, second):
            scan(user_id, "check_in")
        scan(first, "tshirt")
        scan(first, "tshirt")

        stats = client.get("/api/admin/scans/stats", headers=auth_headers(staff)).json()["stats"]
        assert stats == [{"scan_type": "check_in", "count": 2}, {"scan_type": "tshirt", "count": 1}]
