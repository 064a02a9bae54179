"""
Employment (person ↔ company) API tests.

Tests cover:
  - Create with one current employment per person
  - Date rules: end after start, no end date on a current employment
  - Current employer mirrored on the person
  - End, update and delete
  - Listing filters and client scoping
"""

import pytest

from casedesk.models import db
from casedesk.models.company import Person, PersonCompany


def _make_person(name="Hans Müller"):
    person = Person(full_name=name)
    db.session.add(person)
    db.session.commit()
    return person


def _create_employment(client, headers, person_id, company_id, **overrides):
    payload = {
        "person_id": person_id,
        "company_id": company_id,
        "role": "Drilling Engineer",
        "start_date": "2025-03-01",
        "is_current": True,
    }
    payload.update(overrides)
    return client.post("/api/v1/employments", json=payload, headers=headers)


@pytest.fixture()
def worker():
    return _make_person()


# ═══════════════════════════════════════════════════════════════
# CREATE
# ═══════════════════════════════════════════════════════════════

class TestCreateEmployment:
    def test_create_current(self, client, admin_headers, worker, company):
        res = _create_employment(client, admin_headers, worker.id, company.id)
        assert res.status_code == 201
        data = res.get_json()
        assert data["company_name"] == "Acme Energia Ltda"
        assert data["is_current"] is True
        assert data["end_date"] is None
        db.session.expire_all()
        assert db.session.get(Person, worker.id).company_id == company.id

    def test_second_current_employment_refused(self, client, admin_headers, worker, company, other_company):
        _create_employment(client, admin_headers, worker.id, company.id)
        res = _create_employment(client, admin_headers, worker.id, other_company.id)
        assert res.status_code == 422
        assert res.get_json()["error"].startswith("This person already has a current employment")

    def test_past_employment_alongside_current(self, client, admin_headers, worker, company, other_company):
        _create_employment(client, admin_headers, worker.id, company.id)
        res = _create_employment(client, admin_headers, worker.id, other_company.id, is_current=False,
                                 start_date="2020-01-01", end_date="2024-12-31")
        assert res.status_code == 201
        db.session.expire_all()
        assert db.session.get(Person, worker.id).company_id == company.id

    def test_end_before_start(self, client, admin_headers, worker, company):
        res = _create_employment(client, admin_headers, worker.id, company.id, is_current=False,
                                 end_date="2025-03-01")
        assert res.status_code == 422
        assert res.get_json()["error"] == "End date must be after start date"

    def test_current_with_end_date(self, client, admin_headers, worker, company):
        res = _create_employment(client, admin_headers, worker.id, company.id, end_date="2026-01-01")
        assert res.status_code == 422
        assert res.get_json()["error"] == "Current employment cannot have an end date"

    def test_required_fields(self, client, admin_headers, worker, company):
        assert _create_employment(client, admin_headers, worker.id, company.id, role="").status_code == 422
        assert _create_employment(client, admin_headers, worker.id, 999).status_code == 404

    def test_client_cannot_create(self, client, client_headers, worker, company):
        assert _create_employment(client, client_headers, worker.id, company.id).status_code == 403


# ═══════════════════════════════════════════════════════════════
# END / UPDATE / DELETE
# ═══════════════════════════════════════════════════════════════

class TestEmploymentLifecycle:
    @pytest.fixture()
    def current(self, client, admin_headers, worker, company):
        return _create_employment(client, admin_headers, worker.id, company.id).get_json()

    def test_end_clears_current_employer(self, client, admin_headers, worker, current):
        res = client.post(f"/api/v1/employments/{current['id']}/end", json={"end_date": "2026-09-30"},
                          headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["is_current"] is False
        assert res.get_json()["end_date"] == "2026-09-30"
        db.session.expire_all()
        assert db.session.get(Person, worker.id).company_id is None

    def test_end_requires_date(self, client, admin_headers, current):
        res = client.post(f"/api/v1/employments/{current['id']}/end", json={}, headers=admin_headers)
        assert res.status_code == 400

    def test_new_current_after_ending(self, client, admin_headers, worker, other_company, current):
        client.post(f"/api/v1/employments/{current['id']}/end", json={"end_date": "2026-09-30"},
                    headers=admin_headers)
        res = _create_employment(client, admin_headers, worker.id, other_company.id, start_date="2026-10-01")
        assert res.status_code == 201
        db.session.expire_all()
        assert db.session.get(Person, worker.id).company_id == other_company.id

    def test_update_role(self, client, admin_headers, current):
        res = client.put(f"/api/v1/employments/{current['id']}", json={"role": "Site Manager"},
                         headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["role"] == "Site Manager"

    def test_update_moves_current_employer(self, client, admin_headers, worker, other_company, current):
        client.put(f"/api/v1/employments/{current['id']}", json={"company_id": other_company.id},
                   headers=admin_headers)
        db.session.expire_all()
        assert db.session.get(Person, worker.id).company_id == other_company.id

    def test_delete_current(self, client, admin_headers, worker, current):
        assert client.delete(f"/api/v1/employments/{current['id']}", headers=admin_headers).status_code == 200
        db.session.expire_all()
        assert PersonCompany.query.count() == 0
        assert db.session.get(Person, worker.id).company_id is None


# ═══════════════════════════════════════════════════════════════
# LISTING & SCOPE
# ═══════════════════════════════════════════════════════════════

class TestEmploymentListing:
    @pytest.fixture()
    def history(self, client, admin_headers, worker, company, other_company):
        past = _create_employment(client, admin_headers, worker.id, other_company.id, is_current=False,
                                  start_date="2019-01-01", end_date="2024-12-31").get_json()
        now = _create_employment(client, admin_headers, worker.id, company.id).get_json()
        return past, now

    def test_by_person_current_first(self, client, admin_headers, worker, history):
        past, now = history
        res = client.get(f"/api/v1/people/{worker.id}/employments", headers=admin_headers)
        assert [e["id"] for e in res.get_json()] == [now["id"], past["id"]]

    def test_filters(self, client, admin_headers, other_company, history):
        past, _ = history
        res = client.get("/api/v1/employments?is_current=false", headers=admin_headers)
        assert [e["id"] for e in res.get_json()] == [past["id"]]
        res = client.get(f"/api/v1/companies/{other_company.id}/employments", headers=admin_headers)
        assert [e["id"] for e in res.get_json()] == [past["id"]]

    def test_client_sees_own_company_links(self, client, client_headers, history):
        _, now = history
        res = client.get("/api/v1/employments", headers=client_headers)
        assert [e["id"] for e in res.get_json()] == [now["id"]]

    def test_client_cannot_read_foreign_link(self, client, client_headers, other_company, history):
        past, _ = history
        assert client.get(f"/api/v1/employments/{past['id']}", headers=client_headers).status_code == 403
        res = client.get(f"/api/v1/companies/{other_company.id}/employments", headers=client_headers)
        assert res.status_code == 403

    def test_employed_person_visible_to_client(self, client, client_headers, worker, history):
        res = client.get("/api/v1/people", headers=client_headers)
        assert worker.id in [p["id"] for p in res.get_json()]
