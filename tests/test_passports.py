"""
Passport API tests.

Tests cover:
  - Expiry status classification (valid / expiring soon / expired)
  - Create with a single active passport per person
  - Date validation and required fields
  - Update re-activation, delete
  - Per-person listing, active passport and count
  - Search, status filter and the expiring list
  - Client visibility through the holder's company
"""

from datetime import date, timedelta

import pytest

from casedesk.models import db
from casedesk.models.activity import ActivityLog
from casedesk.models.company import Person
from casedesk.models.passport import Passport, add_months, passport_status


# ═══════════════════════════════════════════════════════════════
# FIXTURES & HELPERS
# ═══════════════════════════════════════════════════════════════

def _make_person(company, name="Akira Tanaka"):
    person = Person(full_name=name, company_id=company.id if company else None)
    db.session.add(person)
    db.session.commit()
    return person


def _create_passport(client, headers, person_id, **overrides):
    today = date.today()
    payload = {
        "person_id": person_id,
        "passport_number": "tk1234567",
        "issuing_country": "Japan",
        "issue_date": (today - timedelta(days=365)).isoformat(),
        "expiry_date": (today + timedelta(days=3 * 365)).isoformat(),
    }
    payload.update(overrides)
    return client.post("/api/v1/passports", json=payload, headers=headers)


@pytest.fixture()
def holder(company):
    return _make_person(company)


@pytest.fixture()
def foreign_holder(other_company):
    return _make_person(other_company, name="Diego Ramos")


# ═══════════════════════════════════════════════════════════════
# STATUS
# ═══════════════════════════════════════════════════════════════

class TestPassportStatus:
    TODAY = date(2026, 10, 18)

    @pytest.mark.parametrize("expiry, expected", [
        (None, "expired"),
        (date(2026, 10, 17), "expired"),
        (date(2026, 10, 18), "expiring_soon"),
        (date(2027, 4, 17), "expiring_soon"),
        (date(2027, 4, 18), "valid"),
        (date(2030, 1, 1), "valid"),
    ])
    def test_classification(self, expiry, expected):
        assert passport_status(expiry, self.TODAY) == expected

    def test_add_months_clamps_day(self):
        assert add_months(date(2026, 8, 31), 6) == date(2027, 2, 28)
        assert add_months(date(2026, 10, 18), 6) == date(2027, 4, 18)


# ═══════════════════════════════════════════════════════════════
# CREATE / UPDATE / DELETE
# ═══════════════════════════════════════════════════════════════

class TestPassportLifecycle:
    def test_create(self, client, admin_headers, holder):
        res = _create_passport(client, admin_headers, holder.id)
        assert res.status_code == 201
        data = res.get_json()
        assert data["passport_number"] == "TK1234567"
        assert data["is_active"] is True
        assert data["status"] == "valid"
        assert data["person_name"] == "Akira Tanaka"
        log = ActivityLog.query.filter_by(entity_type="passport", entity_id=data["id"]).one()
        assert log.details["person_name"] == "Akira Tanaka"

    def test_new_active_passport_retires_previous(self, client, admin_headers, holder):
        first = _create_passport(client, admin_headers, holder.id).get_json()
        second = _create_passport(client, admin_headers, holder.id, passport_number="TK7654321").get_json()
        assert db.session.get(Passport, first["id"]).is_active is False
        assert db.session.get(Passport, second["id"]).is_active is True

    def test_inactive_passport_keeps_current_one(self, client, admin_headers, holder):
        first = _create_passport(client, admin_headers, holder.id).get_json()
        _create_passport(client, admin_headers, holder.id, passport_number="OLD001", is_active=False)
        assert db.session.get(Passport, first["id"]).is_active is True

    def test_reactivating_via_update(self, client, admin_headers, holder):
        first = _create_passport(client, admin_headers, holder.id).get_json()
        second = _create_passport(client, admin_headers, holder.id, passport_number="TK7654321").get_json()
        res = client.put(f"/api/v1/passports/{first['id']}", json={"is_active": True}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["is_active"] is True
        assert db.session.get(Passport, second["id"]).is_active is False

    def test_expiry_must_follow_issue(self, client, admin_headers, holder):
        res = _create_passport(client, admin_headers, holder.id, issue_date="2026-01-01", expiry_date="2025-12-31")
        assert res.status_code == 422
        assert res.get_json()["error"] == "Expiry date must be after issue date"

    def test_strict_dates(self, client, admin_headers, holder):
        res = _create_passport(client, admin_headers, holder.id, expiry_date="2030-1-5")
        assert res.status_code == 422

    def test_required_fields(self, client, admin_headers, holder):
        assert _create_passport(client, admin_headers, holder.id, passport_number="  ").status_code == 422
        assert _create_passport(client, admin_headers, None).status_code == 400
        assert _create_passport(client, admin_headers, 999).status_code == 404

    def test_delete(self, client, admin_headers, holder):
        pid = _create_passport(client, admin_headers, holder.id).get_json()["id"]
        assert client.delete(f"/api/v1/passports/{pid}", headers=admin_headers).status_code == 200
        assert db.session.get(Passport, pid) is None

    def test_deleting_person_removes_passports(self, client, admin_headers, holder):
        _create_passport(client, admin_headers, holder.id)
        assert client.delete(f"/api/v1/people/{holder.id}", headers=admin_headers).status_code == 200
        assert Passport.query.count() == 0

    def test_client_cannot_write(self, client, client_headers, holder):
        assert _create_passport(client, client_headers, holder.id).status_code == 403


# ═══════════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════════

class TestPassportQueries:
    @pytest.fixture()
    def passports(self, client, admin_headers, holder, foreign_holder):
        today = date.today()
        old = _create_passport(client, admin_headers, holder.id, passport_number="OLD001",
                               issue_date=(today - timedelta(days=3650)).isoformat(),
                               expiry_date=(today - timedelta(days=30)).isoformat()).get_json()
        soon = _create_passport(client, admin_headers, holder.id, passport_number="SOON01",
                                expiry_date=(today + timedelta(days=60)).isoformat()).get_json()
        foreign = _create_passport(client, admin_headers, foreign_holder.id, passport_number="AR555").get_json()
        return old, soon, foreign

    def test_by_person(self, client, admin_headers, holder, passports):
        old, soon, _ = passports
        res = client.get(f"/api/v1/people/{holder.id}/passports", headers=admin_headers)
        assert [p["id"] for p in res.get_json()] == [soon["id"], old["id"]]
        active = client.get(f"/api/v1/people/{holder.id}/passports/active", headers=admin_headers).get_json()
        assert active["id"] == soon["id"]
        count = client.get(f"/api/v1/people/{holder.id}/passports/count", headers=admin_headers).get_json()
        assert count == {"count": 2}

    def test_no_active_passport(self, client, admin_headers, other_company):
        person = _make_person(other_company, name="Sem Passaporte")
        res = client.get(f"/api/v1/people/{person.id}/passports/active", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json() is None

    def test_search_by_number_or_holder(self, client, admin_headers, passports):
        res = client.get("/api/v1/passports?search=diego", headers=admin_headers)
        assert [p["passport_number"] for p in res.get_json()] == ["AR555"]
        res = client.get("/api/v1/passports?search=soon", headers=admin_headers)
        assert [p["passport_number"] for p in res.get_json()] == ["SOON01"]

    def test_status_filter(self, client, admin_headers, passports):
        res = client.get("/api/v1/passports?status=expired", headers=admin_headers)
        assert [p["passport_number"] for p in res.get_json()] == ["OLD001"]
        assert client.get("/api/v1/passports?status=lost", headers=admin_headers).status_code == 422

    def test_expiring_only_active(self, client, admin_headers, passports):
        data = client.get("/api/v1/passports/expiring", headers=admin_headers).get_json()
        assert [p["passport_number"] for p in data] == ["SOON01"]
        assert data[0]["days_remaining"] == 60
        assert data[0]["status"] == "expiring_soon"

    def test_dashboard_lists_expiring_passports(self, client, admin_headers, passports):
        data = client.get("/api/v1/dashboard", headers=admin_headers).get_json()
        assert [p["passport_number"] for p in data["expiring_passports"]] == ["SOON01"]


class TestPassportVisibility:
    def test_client_lists_own_company_people_only(self, client, admin_headers, client_headers, holder,
                                                 foreign_holder):
        _create_passport(client, admin_headers, holder.id)
        _create_passport(client, admin_headers, foreign_holder.id, passport_number="AR555")
        res = client.get("/api/v1/passports", headers=client_headers)
        assert [p["person_id"] for p in res.get_json()] == [holder.id]

    def test_client_cannot_read_foreign_passport(self, client, admin_headers, client_headers, foreign_holder):
        pid = _create_passport(client, admin_headers, foreign_holder.id).get_json()["id"]
        res = client.get(f"/api/v1/passports/{pid}", headers=client_headers)
        assert res.status_code == 403

    def test_client_person_lookup_hides_foreign_people(self, client, client_headers, foreign_holder):
        res = client.get(f"/api/v1/people/{foreign_holder.id}/passports", headers=client_headers)
        assert res.status_code == 404

    def test_employment_link_grants_visibility(self, client, admin_headers, client_headers, company):
        contractor = _make_person(None, name="Lena Berg")
        client.post("/api/v1/employments", json={
            "person_id": contractor.id, "company_id": company.id, "role": "Contractor",
            "start_date": "2025-01-01", "end_date": "2025-12-31",
        }, headers=admin_headers)
        pid = _create_passport(client, admin_headers, contractor.id).get_json()["id"]
        assert client.get(f"/api/v1/passports/{pid}", headers=client_headers).status_code == 200
