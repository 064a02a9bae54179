"""
Collective & individual process API tests.

Tests cover:
  - Collective process CRUD, reference uniqueness, status transitions,
    delete guard, client scoping
  - Bulk add people and bulk case status update (partial failures)
  - Calculated status summary
  - Individual process creation, duplicate guard, checklist generation
    from templates and from legal framework associations
  - Workflow transitions and history
  - Case status history: add, fillable field validation, activate,
    delete with promotion of the most recent remaining record
  - Government view and requirements checklist
"""

import pytest

from casedesk.models import db
from casedesk.models.catalog import (
    CaseStatus,
    DocumentRequirement,
    DocumentTemplate,
    DocumentType,
    DocumentTypeLegalFramework,
    LegalFramework,
    ProcessType,
)
from casedesk.models.company import Person
from casedesk.models.document import DeliveredDocument
from casedesk.models.process import IndividualProcess, IndividualProcessStatus, ProcessHistory


# ═══════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════

def _create_collective(client, headers, company_id, reference="CP-2026-001", **extra):
    payload = {"reference_number": reference, "company_id": company_id}
    payload.update(extra)
    return client.post("/api/v1/collective-processes", json=payload, headers=headers)


def _make_person(name="Maria Lopez", company_id=None):
    person = Person(full_name=name, company_id=company_id)
    db.session.add(person)
    db.session.commit()
    return person


def _make_case_status(code="em_tramite", name="Em Trâmite", fillable_fields=None, color="#FBBF24"):
    cs = CaseStatus(code=code, name=name, fillable_fields=fillable_fields or [], color=color, sort_order=1)
    db.session.add(cs)
    db.session.commit()
    return cs


def _create_individual(client, headers, collective_id, person_id, **extra):
    payload = {"collective_process_id": collective_id, "person_id": person_id}
    payload.update(extra)
    return client.post("/api/v1/individual-processes", json=payload, headers=headers)


@pytest.fixture()
def collective(client, admin_headers, company):
    return _create_collective(client, admin_headers, company.id).get_json()


@pytest.fixture()
def individual(client, admin_headers, collective, company):
    person = _make_person(company_id=company.id)
    return _create_individual(client, admin_headers, collective["id"], person.id).get_json()


# ═══════════════════════════════════════════════════════════════
# COLLECTIVE PROCESSES
# ═══════════════════════════════════════════════════════════════

class TestCollectiveProcessCrud:
    def test_create(self, client, admin_headers, company):
        res = _create_collective(client, admin_headers, company.id, is_urgent=True, request_date="2026-03-01")
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "draft"
        assert data["is_urgent"] is True
        assert data["request_date"] == "2026-03-01"
        assert data["company_name"] == company.name

    def test_reference_required(self, client, admin_headers, company):
        res = client.post("/api/v1/collective-processes", json={"company_id": company.id}, headers=admin_headers)
        assert res.status_code == 400

    def test_duplicate_reference(self, client, admin_headers, company, collective):
        res = _create_collective(client, admin_headers, company.id)
        assert res.status_code == 409
        assert "CP-2026-001" in res.get_json()["error"]

    def test_get_by_reference(self, client, admin_headers, collective):
        res = client.get("/api/v1/collective-processes/by-reference/CP-2026-001", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["id"] == collective["id"]

    def test_list_is_paginated(self, client, admin_headers, company):
        for i in range(3):
            _create_collective(client, admin_headers, company.id, reference=f"CP-{i}")
        res = client.get("/api/v1/collective-processes?limit=2", headers=admin_headers)
        data = res.get_json()
        assert data["total"] == 3
        assert len(data["items"]) == 2

    def test_update(self, client, admin_headers, collective):
        res = client.put(f"/api/v1/collective-processes/{collective['id']}", json={"notes": "Priority client"},
                         headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["notes"] == "Priority client"

    def test_delete_empty(self, client, admin_headers, collective):
        assert client.delete(f"/api/v1/collective-processes/{collective['id']}", headers=admin_headers).status_code == 200

    def test_delete_refused_with_children(self, client, admin_headers, collective, individual):
        res = client.delete(f"/api/v1/collective-processes/{collective['id']}", headers=admin_headers)
        assert res.status_code == 422


class TestCollectiveTransitions:
    def test_valid_path(self, client, admin_headers, collective):
        url = f"/api/v1/collective-processes/{collective['id']}/status"
        res = client.post(url, json={"status": "in_progress"}, headers=admin_headers)
        assert res.status_code == 200
        res = client.post(url, json={"status": "completed"}, headers=admin_headers)
        assert res.get_json()["status"] == "completed"
        assert res.get_json()["completed_at"] is not None
        res = client.post(url, json={"status": "in_progress"}, headers=admin_headers)
        assert res.get_json()["completed_at"] is None

    def test_invalid_transition(self, client, admin_headers, collective):
        res = client.post(f"/api/v1/collective-processes/{collective['id']}/status",
                          json={"status": "completed"}, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["details"]["allowed"] == ["in_progress", "cancelled"]

    def test_allowed_transitions_in_detail(self, client, admin_headers, collective):
        res = client.get(f"/api/v1/collective-processes/{collective['id']}", headers=admin_headers)
        assert res.get_json()["allowed_transitions"] == ["in_progress", "cancelled"]


class TestCollectiveVisibility:
    def test_client_sees_own_company_only(self, client, admin_headers, client_headers, company, other_company):
        _create_collective(client, admin_headers, company.id, reference="OWN-1")
        foreign = _create_collective(client, admin_headers, other_company.id, reference="FOREIGN-1").get_json()

        res = client.get("/api/v1/collective-processes", headers=client_headers)
        assert [p["reference_number"] for p in res.get_json()["items"]] == ["OWN-1"]

        res = client.get(f"/api/v1/collective-processes/{foreign['id']}", headers=client_headers)
        assert res.status_code == 403
        assert res.get_json()["error"] == "Access denied: Process does not belong to your company"

    def test_client_cannot_create(self, client, client_headers, company):
        assert _create_collective(client, client_headers, company.id).status_code == 403


class TestBulkOperations:
    def test_add_people_with_partial_failure(self, client, admin_headers, collective, company):
        cs = _make_case_status()
        maria = _make_person(company_id=company.id)
        joao = _make_person("João Silva", company_id=company.id)
        res = client.post(
            f"/api/v1/collective-processes/{collective['id']}/people",
            json={"person_ids": [maria.id, joao.id, 9999], "case_status_id": cs.id},
            headers=admin_headers,
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["total_processed"] == 3
        assert len(data["successful"]) == 2
        assert data["failed"] == [{"person_id": 9999, "reason": "Person not found"}]
        assert all(ip["case_status_id"] == cs.id for ip in data["successful"])

        res = client.post(f"/api/v1/collective-processes/{collective['id']}/people",
                          json={"person_ids": [maria.id]}, headers=admin_headers)
        assert res.get_json()["failed"][0]["reason"] == "Maria Lopez is already in this collective process"

    def test_add_people_requires_list(self, client, admin_headers, collective):
        res = client.post(f"/api/v1/collective-processes/{collective['id']}/people",
                          json={"person_ids": []}, headers=admin_headers)
        assert res.status_code == 400

    def test_bulk_case_status(self, client, admin_headers, collective, company):
        second = _make_case_status(code="deferido", name="Deferido", color="#10B981")
        people = [_make_person(f"Person {i}", company_id=company.id) for i in range(2)]
        added = client.post(
            f"/api/v1/collective-processes/{collective['id']}/people",
            json={"person_ids": [p.id for p in people]}, headers=admin_headers,
        ).get_json()["successful"]
        ip_ids = [ip["id"] for ip in added]

        client.post(f"/api/v1/individual-processes/{ip_ids[0]}/statuses",
                    json={"case_status_id": second.id}, headers=admin_headers)

        res = client.post(f"/api/v1/collective-processes/{collective['id']}/case-status",
                          json={"case_status_id": second.id, "date": "2026-05-10"}, headers=admin_headers)
        data = res.get_json()
        assert data["successful"] == [ip_ids[1]]
        assert data["failed"] == [{"id": ip_ids[0], "reason": "Process already has this status"}]
        assert data["total_processed"] == 2

    def test_bulk_case_status_bad_date(self, client, admin_headers, collective, individual):
        cs = _make_case_status()
        res = client.post(f"/api/v1/collective-processes/{collective['id']}/case-status",
                          json={"case_status_id": cs.id, "date": "10/05/2026"}, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Invalid date format. Expected YYYY-MM-DD"

    def test_bulk_case_status_empty_collective(self, client, admin_headers, collective):
        cs = _make_case_status()
        res = client.post(f"/api/v1/collective-processes/{collective['id']}/case-status",
                          json={"case_status_id": cs.id}, headers=admin_headers)
        assert res.status_code == 422


class TestStatusSummary:
    def test_empty(self, client, admin_headers, collective):
        res = client.get(f"/api/v1/collective-processes/{collective['id']}/status-summary", headers=admin_headers)
        assert res.get_json()["display_text"] == "No individual processes"

    def test_breakdown(self, client, admin_headers, collective, company):
        tramite = _make_case_status()
        deferido = _make_case_status(code="deferido", name="Deferido", color="#10B981")
        people = [_make_person(f"Person {i}", company_id=company.id) for i in range(3)]
        client.post(f"/api/v1/collective-processes/{collective['id']}/people",
                    json={"person_ids": [p.id for p in people[:2]], "case_status_id": deferido.id},
                    headers=admin_headers)
        client.post(f"/api/v1/collective-processes/{collective['id']}/people",
                    json={"person_ids": [people[2].id], "case_status_id": tramite.id}, headers=admin_headers)

        data = client.get(f"/api/v1/collective-processes/{collective['id']}/status-summary",
                          headers=admin_headers).get_json()
        assert data["display_text"] == "2 Deferido, 1 Em Trâmite"
        assert data["total_processes"] == 3
        assert data["has_multiple_statuses"] is True
        assert data["color"] == "#10B981"


# ═══════════════════════════════════════════════════════════════
# INDIVIDUAL PROCESSES
# ═══════════════════════════════════════════════════════════════

class TestIndividualProcessCrud:
    def test_create_defaults(self, individual):
        assert individual["workflow_status"] == "pending_documents"
        assert individual["case_status_id"] is None
        assert individual["person_name"] == "Maria Lopez"

    def test_requires_ids(self, client, admin_headers):
        res = client.post("/api/v1/individual-processes", json={}, headers=admin_headers)
        assert res.status_code == 422

    def test_duplicate_person(self, client, admin_headers, collective, individual):
        res = _create_individual(client, admin_headers, collective["id"], individual["person_id"])
        assert res.status_code == 409
        assert res.get_json()["error"] == "Maria Lopez is already in this collective process"

    def test_create_with_initial_status(self, client, admin_headers, collective, company):
        cs = _make_case_status()
        person = _make_person("Ana Souza", company_id=company.id)
        res = _create_individual(client, admin_headers, collective["id"], person.id, case_status_id=cs.id)
        assert res.get_json()["case_status_name"] == "Em Trâmite"
        history = IndividualProcessStatus.query.filter_by(individual_process_id=res.get_json()["id"]).all()
        assert len(history) == 1
        assert history[0].is_active is True
        assert history[0].notes == "Initial status on creation"

    def test_update_government_fields(self, client, admin_headers, individual):
        res = client.put(f"/api/v1/individual-processes/{individual['id']}",
                         json={"protocol_number": "08000.123/2026", "dou_date": "2026-06-01"}, headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["protocol_number"] == "08000.123/2026"
        assert data["dou_date"] == "2026-06-01"

    def test_delete_cascades_documents(self, client, admin_headers, individual):
        client.post(f"/api/v1/individual-processes/{individual['id']}/documents",
                    json={"file_name": "scan.pdf"}, headers=admin_headers)
        res = client.delete(f"/api/v1/individual-processes/{individual['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert DeliveredDocument.query.count() == 0

    def test_client_cannot_read_foreign(self, client, admin_headers, client_headers, other_company):
        cp = _create_collective(client, admin_headers, other_company.id, reference="FOREIGN").get_json()
        person = _make_person("Outsider", company_id=other_company.id)
        ip = _create_individual(client, admin_headers, cp["id"], person.id).get_json()
        assert client.get(f"/api/v1/individual-processes/{ip['id']}", headers=client_headers).status_code == 403
        listed = client.get("/api/v1/individual-processes", headers=client_headers).get_json()
        assert listed["total"] == 0


class TestChecklistGeneration:
    @pytest.fixture()
    def catalog(self):
        pt = ProcessType(name="Work Visa")
        lf = LegalFramework(name="RN 02/2017")
        passport = DocumentType(name="Passport", code="PASSPORT")
        diploma = DocumentType(name="Diploma", code="DIPLOMA")
        db.session.add_all([pt, lf, passport, diploma])
        db.session.commit()
        return pt, lf, passport, diploma

    def test_from_template(self, client, admin_headers, company, catalog):
        pt, lf, passport, diploma = catalog
        template = DocumentTemplate(name="Work visa", process_type_id=pt.id, version=1)
        template.requirements.append(DocumentRequirement(document_type_id=passport.id, is_required=True, sort_order=0))
        template.requirements.append(DocumentRequirement(document_type_id=diploma.id, is_required=False, sort_order=1))
        db.session.add(template)
        db.session.commit()

        cp = _create_collective(client, admin_headers, company.id, process_type_id=pt.id).get_json()
        person = _make_person(company_id=company.id)
        ip = _create_individual(client, admin_headers, cp["id"], person.id).get_json()

        docs = DeliveredDocument.query.filter_by(individual_process_id=ip["id"]).order_by(DeliveredDocument.id).all()
        assert [d.document_type_id for d in docs] == [passport.id, diploma.id]
        assert [d.is_required for d in docs] == [True, False]
        assert all(d.status == "not_started" and d.is_latest for d in docs)

    def test_from_framework_associations(self, client, admin_headers, company, catalog):
        pt, lf, passport, _ = catalog
        db.session.add(DocumentTypeLegalFramework(document_type_id=passport.id, legal_framework_id=lf.id))
        db.session.commit()

        cp = _create_collective(client, admin_headers, company.id, process_type_id=pt.id).get_json()
        person = _make_person(company_id=company.id)
        ip = _create_individual(client, admin_headers, cp["id"], person.id, legal_framework_id=lf.id).get_json()

        docs = DeliveredDocument.query.filter_by(individual_process_id=ip["id"]).all()
        assert [d.document_type_id for d in docs] == [passport.id]

    def test_no_process_type_means_no_checklist(self, client, admin_headers, individual):
        assert DeliveredDocument.query.filter_by(individual_process_id=individual["id"]).count() == 0


class TestWorkflow:
    def test_transition_records_history(self, client, admin_headers, individual):
        url = f"/api/v1/individual-processes/{individual['id']}/workflow"
        res = client.post(url, json={"status": "documents_submitted", "notes": "All uploaded"}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["workflow_status"] == "documents_submitted"

        history = client.get(f"/api/v1/individual-processes/{individual['id']}/history",
                             headers=admin_headers).get_json()
        assert len(history) == 1
        assert history[0]["previous_status"] == "pending_documents"
        assert history[0]["new_status"] == "documents_submitted"
        assert history[0]["notes"] == "All uploaded"

    def test_invalid_transition(self, client, admin_headers, individual):
        res = client.post(f"/api/v1/individual-processes/{individual['id']}/workflow",
                          json={"status": "completed"}, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["details"]["allowed"] == ["documents_submitted", "cancelled"]
        assert ProcessHistory.query.count() == 0

    def test_unknown_status(self, client, admin_headers, individual):
        res = client.post(f"/api/v1/individual-processes/{individual['id']}/workflow",
                          json={"status": "teleported"}, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Unknown status: teleported"

    def test_same_status_is_noop(self, client, admin_headers, individual):
        res = client.post(f"/api/v1/individual-processes/{individual['id']}/workflow",
                          json={"status": "pending_documents"}, headers=admin_headers)
        assert res.status_code == 200
        assert ProcessHistory.query.count() == 0

    def test_detail_lists_allowed_transitions(self, client, admin_headers, individual):
        res = client.get(f"/api/v1/individual-processes/{individual['id']}", headers=admin_headers)
        assert res.get_json()["allowed_transitions"] == ["documents_submitted", "cancelled"]


class TestCaseStatusHistory:
    def test_add_status_copies_filled_fields(self, client, admin_headers, individual):
        cs = _make_case_status(fillable_fields=["protocol_number", "deadline_date"])
        res = client.post(
            f"/api/v1/individual-processes/{individual['id']}/statuses",
            json={"case_status_id": cs.id, "date": "2026-04-02",
                  "filled_fields_data": {"protocol_number": "PROT-1", "deadline_date": "2026-07-01"}},
            headers=admin_headers,
        )
        assert res.status_code == 201
        record = res.get_json()
        assert record["is_active"] is True
        assert record["date"] == "2026-04-02"
        assert record["status_name"] == "Em Trâmite"

        ip = db.session.get(IndividualProcess, individual["id"])
        assert ip.case_status_id == cs.id
        assert ip.protocol_number == "PROT-1"
        assert ip.deadline_date.isoformat() == "2026-07-01"

    def test_field_not_fillable(self, client, admin_headers, individual):
        cs = _make_case_status(fillable_fields=["protocol_number"])
        res = client.post(f"/api/v1/individual-processes/{individual['id']}/statuses",
                          json={"case_status_id": cs.id, "filled_fields_data": {"rnm_number": "X"}},
                          headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == 'Field "rnm_number" is not a fillable field for this status'

    @pytest.mark.parametrize("bad_date", ["02/04/2026", "2024-1-5", "2024-01-5", "2024-02-30"])
    def test_bad_date_format(self, client, admin_headers, individual, bad_date):
        cs = _make_case_status()
        res = client.post(f"/api/v1/individual-processes/{individual['id']}/statuses",
                          json={"case_status_id": cs.id, "date": bad_date}, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["error"] == "Invalid date format. Expected YYYY-MM-DD"

    def test_only_one_active_record(self, client, admin_headers, individual):
        first = _make_case_status()
        second = _make_case_status(code="deferido", name="Deferido")
        url = f"/api/v1/individual-processes/{individual['id']}/statuses"
        client.post(url, json={"case_status_id": first.id}, headers=admin_headers)
        client.post(url, json={"case_status_id": second.id}, headers=admin_headers)

        history = client.get(url, headers=admin_headers).get_json()
        assert [h["case_status_id"] for h in history] == [second.id, first.id]
        assert [h["is_active"] for h in history] == [True, False]
        active = client.get(f"{url}/active", headers=admin_headers).get_json()
        assert active["case_status_id"] == second.id

    def test_reactivate_older_record(self, client, admin_headers, individual):
        first = _make_case_status()
        second = _make_case_status(code="deferido", name="Deferido")
        url = f"/api/v1/individual-processes/{individual['id']}/statuses"
        old_id = client.post(url, json={"case_status_id": first.id}, headers=admin_headers).get_json()["id"]
        client.post(url, json={"case_status_id": second.id}, headers=admin_headers)

        res = client.put(f"/api/v1/process-statuses/{old_id}", json={"is_active": True}, headers=admin_headers)
        assert res.get_json()["is_active"] is True
        assert db.session.get(IndividualProcess, individual["id"]).case_status_id == first.id
        assert IndividualProcessStatus.query.filter_by(is_active=True).count() == 1

    def test_delete_active_promotes_previous(self, client, admin_headers, individual):
        first = _make_case_status()
        second = _make_case_status(code="deferido", name="Deferido")
        url = f"/api/v1/individual-processes/{individual['id']}/statuses"
        first_id = client.post(url, json={"case_status_id": first.id}, headers=admin_headers).get_json()["id"]
        second_id = client.post(url, json={"case_status_id": second.id}, headers=admin_headers).get_json()["id"]

        assert client.delete(f"/api/v1/process-statuses/{second_id}", headers=admin_headers).status_code == 200
        assert db.session.get(IndividualProcessStatus, first_id).is_active is True
        assert db.session.get(IndividualProcess, individual["id"]).case_status_id == first.id

        client.delete(f"/api/v1/process-statuses/{first_id}", headers=admin_headers)
        assert db.session.get(IndividualProcess, individual["id"]).case_status_id is None


class TestGovernmentView:
    def test_progress_follows_fields(self, client, admin_headers, individual):
        url = f"/api/v1/individual-processes/{individual['id']}/government"
        assert client.get(url, headers=admin_headers).get_json()["status"] == "not_started"

        client.put(f"/api/v1/individual-processes/{individual['id']}",
                   json={"protocol_number": "PROT-9"}, headers=admin_headers)
        data = client.get(url, headers=admin_headers).get_json()
        assert data["status"] == "submitted"
        assert data["progress"] == 60
        assert data["next_action"] == "awaitingDOUPublication"
        assert data["fields"]["protocol_number"] == "PROT-9"


class TestRequirementsChecklist:
    def test_summary_counts(self, client, admin_headers, company):
        lf = LegalFramework(name="RN 02/2017")
        passport = DocumentType(name="Passport", code="PASSPORT")
        diploma = DocumentType(name="Diploma", code="DIPLOMA")
        db.session.add_all([lf, passport, diploma])
        db.session.flush()
        db.session.add_all([
            DocumentTypeLegalFramework(document_type_id=passport.id, legal_framework_id=lf.id, sort_order=1),
            DocumentTypeLegalFramework(document_type_id=diploma.id, legal_framework_id=lf.id, sort_order=2),
        ])
        db.session.commit()

        cp = _create_collective(client, admin_headers, company.id).get_json()
        person = _make_person(company_id=company.id)
        ip = _create_individual(client, admin_headers, cp["id"], person.id, legal_framework_id=lf.id).get_json()
        client.post(f"/api/v1/individual-processes/{ip['id']}/documents",
                    json={"file_name": "passport.pdf", "document_type_id": passport.id}, headers=admin_headers)

        data = client.get(f"/api/v1/individual-processes/{ip['id']}/requirements-checklist",
                          headers=admin_headers).get_json()
        assert data["summary"] == {"total": 2, "completed": 1, "partial": 0, "pending": 1}
        assert [i["completion_status"] for i in data["items"]] == ["completed", "pending"]
        assert data["items"][0]["validity"]["status"] == "no_rule"

    def test_without_framework(self, client, admin_headers, individual):
        data = client.get(f"/api/v1/individual-processes/{individual['id']}/requirements-checklist",
                          headers=admin_headers).get_json()
        assert data["summary"]["total"] == 0
