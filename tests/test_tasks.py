"""
Task API tests.

Tests cover:
  - Create with process linkage, priority validation, assignee notification
  - Task persists when the assignment notification cannot be stored
  - Update (status completion bookkeeping, reassignment via update)
  - Complete by assignee, reassign, extend deadline, delete
  - My tasks / overdue listings
  - Client scoping of the task list
"""

from datetime import date, timedelta

import pytest

from casedesk.models import db
from casedesk.models.company import Person
from casedesk.models.notification import Notification
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.models.task import Task


# ═══════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════

def _make_individual(company, reference="CP-TASK"):
    person = Person(full_name="Akira Tanaka", company_id=company.id)
    cp = CollectiveProcess(reference_number=reference, company_id=company.id)
    db.session.add_all([person, cp])
    db.session.flush()
    ip = IndividualProcess(collective_process_id=cp.id, person_id=person.id)
    db.session.add(ip)
    db.session.commit()
    return ip


def _create_task(client, headers, **overrides):
    payload = {"title": "Collect apostilled diploma", "priority": "high"}
    payload.update(overrides)
    return client.post("/api/v1/tasks", json=payload, headers=headers)


@pytest.fixture()
def individual(company):
    return _make_individual(company)


@pytest.fixture()
def staff(make_user):
    return make_user("analyst@agency.test", role="admin", full_name="Case Analyst")


# ═══════════════════════════════════════════════════════════════
# CREATE
# ═══════════════════════════════════════════════════════════════

class TestCreateTask:
    def test_create_for_individual_process(self, client, admin_headers, individual):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, due_date="2026-11-30")
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "todo"
        assert data["priority"] == "high"
        assert data["due_date"] == "2026-11-30"
        assert data["collective_process_id"] == individual.collective_process_id

    def test_requires_a_process(self, client, admin_headers):
        res = _create_task(client, admin_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Either individual_process_id or collective_process_id must be provided"

    def test_unknown_process(self, client, admin_headers):
        assert _create_task(client, admin_headers, individual_process_id=999).status_code == 404

    def test_title_required(self, client, admin_headers, individual):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, title="   ")
        assert res.status_code == 422

    def test_invalid_priority(self, client, admin_headers, individual):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, priority="whenever")
        assert res.status_code == 422
        assert res.get_json()["error"] == "Invalid priority value"

    def test_default_priority(self, client, admin_headers, individual):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, priority=None)
        assert res.get_json()["priority"] == "medium"

    def test_assignee_notified(self, client, admin_headers, individual, staff):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, assigned_to=staff.id)
        data = res.get_json()
        assert data["assignee_name"] == "Case Analyst"
        note = Notification.query.filter_by(user_id=staff.id).one()
        assert note.type == "task_assigned"
        assert note.title == "New Task Assigned"
        assert note.entity_id == data["id"]

    def test_task_kept_when_notification_insert_fails(self, client, admin_headers, individual, staff,
                                                      fail_inserts):
        fail_inserts(Notification)
        res = _create_task(client, admin_headers, individual_process_id=individual.id, assigned_to=staff.id)
        assert res.status_code == 201
        db.session.expire_all()
        assert db.session.get(Task, res.get_json()["id"]).assigned_to == staff.id
        assert Notification.query.count() == 0

    def test_unknown_assignee(self, client, admin_headers, individual):
        res = _create_task(client, admin_headers, individual_process_id=individual.id, assigned_to=4242)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Assigned user not found"

    def test_client_cannot_create(self, client, client_headers, individual):
        res = _create_task(client, client_headers, individual_process_id=individual.id)
        assert res.status_code == 403


# ═══════════════════════════════════════════════════════════════
# UPDATE / LIFECYCLE
# ═══════════════════════════════════════════════════════════════

class TestTaskLifecycle:
    @pytest.fixture()
    def task(self, client, admin_headers, individual, staff):
        return _create_task(client, admin_headers, individual_process_id=individual.id,
                            assigned_to=staff.id).get_json()

    def test_update_status_to_completed_sets_completion(self, client, admin_headers, admin_user, task):
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"status": "completed"}, headers=admin_headers)
        data = res.get_json()
        assert data["completed_at"] is not None
        assert data["completed_by"] == admin_user.id

        res = client.put(f"/api/v1/tasks/{task['id']}", json={"status": "in_progress"}, headers=admin_headers)
        assert res.get_json()["completed_at"] is None

    def test_update_invalid_status(self, client, admin_headers, task):
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"status": "paused"}, headers=admin_headers)
        assert res.status_code == 422

    def test_update_with_new_assignee_reassigns(self, client, admin_headers, task, make_user):
        other = make_user("second@agency.test", role="admin")
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"title": "Renamed", "assigned_to": other.id},
                         headers=admin_headers)
        data = res.get_json()
        assert data["title"] == "Renamed"
        assert data["assigned_to"] == other.id
        note = Notification.query.filter_by(user_id=other.id).one()
        assert note.title == "Task Reassigned to You"

    def test_assignee_completes(self, client, task, staff, headers_for):
        res = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=headers_for(staff))
        assert res.status_code == 200
        assert res.get_json()["status"] == "completed"

        res = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=headers_for(staff))
        assert res.status_code == 422
        assert res.get_json()["error"] == "Task is already completed"

    def test_client_not_assigned_cannot_complete(self, client, client_headers, task):
        res = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=client_headers)
        assert res.status_code == 403

    def test_reassign_to_nobody(self, client, admin_headers, task):
        res = client.post(f"/api/v1/tasks/{task['id']}/reassign", json={"assigned_to": None},
                          headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["assigned_to"] is None

    def test_reassign_requires_field(self, client, admin_headers, task):
        res = client.post(f"/api/v1/tasks/{task['id']}/reassign", json={}, headers=admin_headers)
        assert res.status_code == 400

    def test_extend_deadline(self, client, admin_headers, task):
        res = client.post(f"/api/v1/tasks/{task['id']}/extend-deadline", json={"due_date": "2027-01-15"},
                          headers=admin_headers)
        assert res.get_json()["due_date"] == "2027-01-15"

        res = client.post(f"/api/v1/tasks/{task['id']}/extend-deadline", json={"due_date": "someday"},
                          headers=admin_headers)
        assert res.status_code == 422

    def test_delete(self, client, admin_headers, task):
        assert client.delete(f"/api/v1/tasks/{task['id']}", headers=admin_headers).status_code == 200
        assert db.session.get(Task, task["id"]) is None
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=admin_headers).status_code == 404


# ═══════════════════════════════════════════════════════════════
# LISTINGS
# ═══════════════════════════════════════════════════════════════

class TestTaskListings:
    def test_my_tasks_excludes_completed(self, client, admin_headers, individual, staff, headers_for):
        open_id = _create_task(client, admin_headers, individual_process_id=individual.id,
                               assigned_to=staff.id).get_json()["id"]
        done_id = _create_task(client, admin_headers, individual_process_id=individual.id,
                               assigned_to=staff.id, title="Done already").get_json()["id"]
        client.post(f"/api/v1/tasks/{done_id}/complete", headers=admin_headers)

        res = client.get("/api/v1/tasks/mine", headers=headers_for(staff))
        assert [t["id"] for t in res.get_json()] == [open_id]
        res = client.get("/api/v1/tasks/mine?include_completed=true", headers=headers_for(staff))
        assert len(res.get_json()) == 2

    def test_overdue(self, client, admin_headers, individual):
        past = (date.today() - timedelta(days=3)).isoformat()
        future = (date.today() + timedelta(days=3)).isoformat()
        late = _create_task(client, admin_headers, individual_process_id=individual.id, due_date=past).get_json()
        _create_task(client, admin_headers, individual_process_id=individual.id, due_date=future)
        res = client.get("/api/v1/tasks/overdue", headers=admin_headers)
        assert [t["id"] for t in res.get_json()] == [late["id"]]

    def test_list_filters_and_order(self, client, admin_headers, individual):
        _create_task(client, admin_headers, individual_process_id=individual.id, title="No date", priority="low")
        _create_task(client, admin_headers, individual_process_id=individual.id, title="Later",
                     due_date="2026-12-20")
        _create_task(client, admin_headers, individual_process_id=individual.id, title="Sooner",
                     due_date="2026-11-20")
        data = client.get("/api/v1/tasks", headers=admin_headers).get_json()
        assert data["total"] == 3
        assert [t["title"] for t in data["items"]] == ["Sooner", "Later", "No date"]

        data = client.get("/api/v1/tasks?priority=low", headers=admin_headers).get_json()
        assert [t["title"] for t in data["items"]] == ["No date"]

    def test_client_sees_only_own_company_tasks(self, client, admin_headers, client_headers, individual,
                                                other_company):
        foreign = _make_individual(other_company, reference="CP-OTHER")
        own_id = _create_task(client, admin_headers, individual_process_id=individual.id).get_json()["id"]
        foreign_id = _create_task(client, admin_headers, individual_process_id=foreign.id).get_json()["id"]

        data = client.get("/api/v1/tasks", headers=client_headers).get_json()
        assert [t["id"] for t in data["items"]] == [own_id]
        assert client.get(f"/api/v1/tasks/{foreign_id}", headers=client_headers).status_code == 403
