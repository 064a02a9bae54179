"""
Catalog API tests: process types, legal frameworks, case statuses,
document types, framework associations, conditions and templates.

Tests cover:
  - Admin-only writes, client read access
  - Case status code uniqueness, fillable field validation, sort order,
    in-use guards, toggle, reorder and default seeding
  - Document categories: code generation and normalisation, uniqueness,
    soft delete, toggle, document types referencing a category by code
  - Document type extension normalisation and delete guard
  - Replace-all framework associations and toggle-all
  - Condition catalog, document-type links, available list
  - Template versioning, clone, requirements and in-use delete guard
"""

import pytest

from casedesk.models import db
from casedesk.models.catalog import CaseStatus, DocumentTypeLegalFramework
from casedesk.models.company import Person
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.catalog_service import DEFAULT_CASE_STATUSES, generate_category_code, seed_default_case_statuses


# ═══════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════

def _create_process_type(client, headers, name="Work Visa"):
    return client.post("/api/v1/process-types", json={"name": name, "estimated_days": 90}, headers=headers)


def _create_legal_framework(client, headers, name="RN 02/2017", process_type_id=None):
    return client.post(
        "/api/v1/legal-frameworks",
        json={"name": name, "process_type_id": process_type_id},
        headers=headers,
    )


def _create_case_status(client, headers, **overrides):
    payload = {"name": "Em Trâmite", "name_en": "In Progress", "code": "em_tramite", "category": "in_progress"}
    payload.update(overrides)
    return client.post("/api/v1/case-statuses", json=payload, headers=headers)


def _create_document_type(client, headers, **overrides):
    payload = {"name": "Passport", "code": "PASSPORT", "allowed_file_types": ["pdf", ".JPG"]}
    payload.update(overrides)
    return client.post("/api/v1/document-types", json=payload, headers=headers)


def _make_individual_process(company, case_status_id=None):
    person = Person(full_name="Maria Lopez", company_id=company.id)
    cp = CollectiveProcess(reference_number="CP-CAT", company_id=company.id)
    db.session.add_all([person, cp])
    db.session.flush()
    ip = IndividualProcess(collective_process_id=cp.id, person_id=person.id, case_status_id=case_status_id)
    db.session.add(ip)
    db.session.commit()
    return ip


# ═══════════════════════════════════════════════════════════════
# PROCESS TYPES & LEGAL FRAMEWORKS
# ═══════════════════════════════════════════════════════════════

class TestProcessTypes:
    def test_create_and_list(self, client, admin_headers, client_headers):
        res = _create_process_type(client, admin_headers)
        assert res.status_code == 201
        assert res.get_json()["estimated_days"] == 90
        res = client.get("/api/v1/process-types", headers=client_headers)
        assert res.status_code == 200
        assert [pt["name"] for pt in res.get_json()] == ["Work Visa"]

    def test_client_cannot_create(self, client, client_headers):
        assert _create_process_type(client, client_headers).status_code == 403

    def test_requires_name(self, client, admin_headers):
        res = client.post("/api/v1/process-types", json={"name": ""}, headers=admin_headers)
        assert res.status_code == 422

    def test_delete_refused_when_used(self, client, admin_headers, company):
        pt_id = _create_process_type(client, admin_headers).get_json()["id"]
        db.session.add(CollectiveProcess(reference_number="CP-PT", company_id=company.id, process_type_id=pt_id))
        db.session.commit()
        res = client.delete(f"/api/v1/process-types/{pt_id}", headers=admin_headers)
        assert res.status_code == 422


class TestLegalFrameworks:
    def test_create_and_filter_by_process_type(self, client, admin_headers):
        pt_id = _create_process_type(client, admin_headers).get_json()["id"]
        _create_legal_framework(client, admin_headers, process_type_id=pt_id)
        _create_legal_framework(client, admin_headers, name="RN 01/2017")
        res = client.get(f"/api/v1/legal-frameworks?process_type_id={pt_id}", headers=admin_headers)
        assert [lf["name"] for lf in res.get_json()] == ["RN 02/2017"]

    def test_delete_refused_when_used(self, client, admin_headers, company):
        lf_id = _create_legal_framework(client, admin_headers).get_json()["id"]
        ip = _make_individual_process(company)
        ip.legal_framework_id = lf_id
        db.session.commit()
        res = client.delete(f"/api/v1/legal-frameworks/{lf_id}", headers=admin_headers)
        assert res.status_code == 422


# ═══════════════════════════════════════════════════════════════
# CASE STATUSES
# ═══════════════════════════════════════════════════════════════

class TestCaseStatuses:
    def test_create_case_status(self, client, admin_headers):
        res = _create_case_status(client, admin_headers, fillable_fields=["protocol_number", "deadline_date"])
        assert res.status_code == 201
        data = res.get_json()
        assert data["code"] == "em_tramite"
        assert data["fillable_fields"] == ["protocol_number", "deadline_date"]
        assert data["sort_order"] == 1
        assert data["is_active"] is True

    def test_sort_order_is_appended(self, client, admin_headers):
        _create_case_status(client, admin_headers)
        res = _create_case_status(client, admin_headers, code="deferido", name="Deferido")
        assert res.get_json()["sort_order"] == 2

    def test_code_required(self, client, admin_headers):
        res = _create_case_status(client, admin_headers, code=" ")
        assert res.status_code == 422
        assert res.get_json()["error"] == "Case status code is required"

    def test_duplicate_code(self, client, admin_headers):
        _create_case_status(client, admin_headers)
        res = _create_case_status(client, admin_headers, name="Other")
        assert res.status_code == 409
        assert res.get_json()["error"] == 'Case status with code "em_tramite" already exists'

    def test_unknown_fillable_field(self, client, admin_headers):
        res = _create_case_status(client, admin_headers, fillable_fields=["shoe_size"])
        assert res.status_code == 422
        assert "shoe_size" in res.get_json()["error"]

    def test_filter_by_category_and_active(self, client, admin_headers):
        _create_case_status(client, admin_headers)
        inactive_id = _create_case_status(
            client, admin_headers, code="deferido", name="Deferido", category="approved",
        ).get_json()["id"]
        client.post(f"/api/v1/case-statuses/{inactive_id}/toggle", json={"is_active": False}, headers=admin_headers)

        res = client.get("/api/v1/case-statuses?category=approved", headers=admin_headers)
        assert [s["code"] for s in res.get_json()] == ["deferido"]
        res = client.get("/api/v1/case-statuses?active_only=true", headers=admin_headers)
        assert [s["code"] for s in res.get_json()] == ["em_tramite"]

    def test_delete_is_soft(self, client, admin_headers):
        cs_id = _create_case_status(client, admin_headers).get_json()["id"]
        res = client.delete(f"/api/v1/case-statuses/{cs_id}", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["is_active"] is False
        assert db.session.get(CaseStatus, cs_id) is not None

    def test_delete_refused_when_in_use(self, client, admin_headers, company):
        cs_id = _create_case_status(client, admin_headers).get_json()["id"]
        _make_individual_process(company, case_status_id=cs_id)
        res = client.delete(f"/api/v1/case-statuses/{cs_id}", headers=admin_headers)
        assert res.status_code == 422
        res = client.post(f"/api/v1/case-statuses/{cs_id}/toggle", json={"is_active": False}, headers=admin_headers)
        assert res.status_code == 422

    def test_code_change_refused_when_in_use(self, client, admin_headers, company):
        cs_id = _create_case_status(client, admin_headers).get_json()["id"]
        _make_individual_process(company, case_status_id=cs_id)
        res = client.put(f"/api/v1/case-statuses/{cs_id}", json={"code": "renamed"}, headers=admin_headers)
        assert res.status_code == 422

    def test_reorder(self, client, admin_headers):
        first = _create_case_status(client, admin_headers).get_json()["id"]
        second = _create_case_status(client, admin_headers, code="deferido", name="Deferido").get_json()["id"]
        res = client.post("/api/v1/case-statuses/reorder", json={"ids": [second, first]}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json() == {"updated": 2}
        listed = client.get("/api/v1/case-statuses", headers=admin_headers).get_json()
        assert [s["id"] for s in listed] == [second, first]

    def test_reorder_unknown_id(self, client, admin_headers):
        res = client.post("/api/v1/case-statuses/reorder", json={"ids": [404]}, headers=admin_headers)
        assert res.status_code == 404


class TestSeedCaseStatuses:
    def test_seed_inserts_defaults(self):
        created = seed_default_case_statuses()
        db.session.commit()
        assert created == len(DEFAULT_CASE_STATUSES)
        rnm = CaseStatus.query.filter_by(code="rnm").first()
        assert rnm.category == "completed"
        assert rnm.name_en == "National Migration Registry"

    def test_seed_is_idempotent(self):
        db.session.add(CaseStatus(name="Custom Deferido", code="deferido", sort_order=1))
        db.session.commit()
        created = seed_default_case_statuses()
        db.session.commit()
        assert created == len(DEFAULT_CASE_STATUSES) - 1
        assert seed_default_case_statuses() == 0
        assert CaseStatus.query.filter_by(code="deferido").one().name == "Custom Deferido"

    def test_cli_command(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-case-statuses"])
        assert result.exit_code == 0
        assert f"Seeded {len(DEFAULT_CASE_STATUSES)} new case statuses." in result.output


# ═══════════════════════════════════════════════════════════════
# DOCUMENT CATEGORIES
# ═══════════════════════════════════════════════════════════════

def _create_category(client, headers, **overrides):
    payload = {"name": "Identificação", "description": "Identity documents"}
    payload.update(overrides)
    return client.post("/api/v1/document-categories", json=payload, headers=headers)


class TestDocumentCategories:
    @pytest.mark.parametrize("name, code", [
        ("Identificação", "IDENTIFICACAO"),
        ("Certidões de Nascimento", "CERTIDOES_DE_NASCIMENTO"),
        ("  Work-permit / RNM  ", "WORK_PERMIT_RNM"),
    ])
    def test_generate_code(self, name, code):
        assert generate_category_code(name) == code

    def test_create_generates_code(self, client, admin_headers):
        res = _create_category(client, admin_headers)
        assert res.status_code == 201
        data = res.get_json()
        assert data["code"] == "IDENTIFICACAO"
        assert data["is_active"] is True

    def test_explicit_code_normalised(self, client, admin_headers):
        res = _create_category(client, admin_headers, code="civil records")
        assert res.get_json()["code"] == "CIVIL_RECORDS"

    def test_invalid_code(self, client, admin_headers):
        res = _create_category(client, admin_headers, code="ç!")
        assert res.status_code == 422

    def test_short_name(self, client, admin_headers):
        assert _create_category(client, admin_headers, name="X").status_code == 422

    def test_duplicate_code(self, client, admin_headers):
        _create_category(client, admin_headers)
        res = _create_category(client, admin_headers, name="Identificacao")
        assert res.status_code == 409
        assert res.get_json()["error"] == "A document category with this code already exists"

    def test_list_search_and_active_only(self, client, admin_headers):
        _create_category(client, admin_headers)
        other = _create_category(client, admin_headers, name="Trabalho", description="Employment records").get_json()
        client.delete(f"/api/v1/document-categories/{other['id']}", headers=admin_headers)

        res = client.get("/api/v1/document-categories?search=employment", headers=admin_headers)
        assert [c["code"] for c in res.get_json()] == ["TRABALHO"]
        res = client.get("/api/v1/document-categories?active_only=true", headers=admin_headers)
        assert [c["code"] for c in res.get_json()] == ["IDENTIFICACAO"]

    def test_soft_delete_and_toggle(self, client, admin_headers):
        cat_id = _create_category(client, admin_headers).get_json()["id"]
        res = client.delete(f"/api/v1/document-categories/{cat_id}", headers=admin_headers)
        assert res.get_json()["is_active"] is False
        res = client.post(f"/api/v1/document-categories/{cat_id}/toggle", headers=admin_headers)
        assert res.get_json()["is_active"] is True

    def test_get_by_code(self, client, client_headers, admin_headers):
        _create_category(client, admin_headers)
        res = client.get("/api/v1/document-categories/by-code/identificacao", headers=client_headers)
        assert res.status_code == 200
        assert res.get_json()["name"] == "Identificação"
        assert client.get("/api/v1/document-categories/by-code/NOPE", headers=client_headers).status_code == 404

    def test_client_cannot_create(self, client, client_headers):
        assert _create_category(client, client_headers).status_code == 403

    def test_document_type_references_category(self, client, admin_headers):
        _create_category(client, admin_headers)
        res = _create_document_type(client, admin_headers, category="identificacao")
        assert res.status_code == 201
        assert res.get_json()["category"] == "IDENTIFICACAO"
        assert res.get_json()["category_name"] == "Identificação"

        res = client.get("/api/v1/document-types?category=IDENTIFICACAO", headers=admin_headers)
        assert [dt["code"] for dt in res.get_json()] == ["PASSPORT"]

    def test_unknown_category_rejected(self, client, admin_headers):
        res = _create_document_type(client, admin_headers, category="nowhere")
        assert res.status_code == 422
        assert res.get_json()["error"] == "Unknown document category: nowhere"

    def test_renaming_code_carries_document_types(self, client, admin_headers):
        cat_id = _create_category(client, admin_headers).get_json()["id"]
        dt_id = _create_document_type(client, admin_headers, category="IDENTIFICACAO").get_json()["id"]
        res = client.put(f"/api/v1/document-categories/{cat_id}", json={"code": "IDENTITY"}, headers=admin_headers)
        assert res.get_json()["code"] == "IDENTITY"
        db.session.expire_all()
        assert client.get(f"/api/v1/document-types/{dt_id}", headers=admin_headers).get_json()["category"] == "IDENTITY"


# ═══════════════════════════════════════════════════════════════
# DOCUMENT TYPES & ASSOCIATIONS
# ═══════════════════════════════════════════════════════════════

class TestDocumentTypes:
    def test_create_normalises_extensions(self, client, admin_headers):
        res = _create_document_type(client, admin_headers)
        assert res.status_code == 201
        assert res.get_json()["allowed_file_types"] == [".pdf", ".jpg"]

    def test_duplicate_code(self, client, admin_headers):
        _create_document_type(client, admin_headers)
        assert _create_document_type(client, admin_headers, name="Passport 2").status_code == 409

    def test_max_file_size_must_be_positive(self, client, admin_headers):
        res = _create_document_type(client, admin_headers, max_file_size_mb=0)
        assert res.status_code == 422

    def test_max_file_size_must_be_numeric(self, client, admin_headers):
        res = _create_document_type(client, admin_headers, max_file_size_mb="ten")
        assert res.status_code == 422
        assert res.get_json()["error"] == "max_file_size_mb must be a number"

    def test_update_max_file_size_must_be_numeric(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        res = client.put(f"/api/v1/document-types/{dt_id}", json={"max_file_size_mb": "big"}, headers=admin_headers)
        assert res.status_code == 422

    def test_search(self, client, admin_headers):
        _create_document_type(client, admin_headers)
        _create_document_type(client, admin_headers, name="Birth Certificate", code="BIRTH")
        res = client.get("/api/v1/document-types?search=birth", headers=admin_headers)
        assert [dt["code"] for dt in res.get_json()] == ["BIRTH"]

    def test_delete_removes_associations(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        lf_id = _create_legal_framework(client, admin_headers).get_json()["id"]
        client.put(f"/api/v1/document-types/{dt_id}/legal-frameworks",
                   json={"items": [{"legal_framework_id": lf_id}]}, headers=admin_headers)
        assert client.delete(f"/api/v1/document-types/{dt_id}", headers=admin_headers).status_code == 200
        assert DocumentTypeLegalFramework.query.count() == 0


class TestFrameworkAssociations:
    @pytest.fixture()
    def catalog(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        lf1 = _create_legal_framework(client, admin_headers).get_json()["id"]
        lf2 = _create_legal_framework(client, admin_headers, name="RN 01/2017").get_json()["id"]
        return dt_id, lf1, lf2

    def test_replace_associations(self, client, admin_headers, catalog):
        dt_id, lf1, lf2 = catalog
        res = client.put(
            f"/api/v1/document-types/{dt_id}/legal-frameworks",
            json={"items": [
                {"legal_framework_id": lf1, "is_required": True, "validity_type": "fixed_expiry", "validity_days": 180},
                {"legal_framework_id": lf2, "is_required": False},
            ]},
            headers=admin_headers,
        )
        assert res.status_code == 200
        assert len(res.get_json()) == 2

        res = client.put(
            f"/api/v1/document-types/{dt_id}/legal-frameworks",
            json={"items": [{"legal_framework_id": lf2}]},
            headers=admin_headers,
        )
        assert [a["legal_framework_id"] for a in res.get_json()] == [lf2]
        listed = client.get(f"/api/v1/legal-frameworks/{lf2}/document-types", headers=admin_headers).get_json()
        assert listed[0]["document_type"]["code"] == "PASSPORT"

    def test_duplicate_framework_in_payload(self, client, admin_headers, catalog):
        dt_id, lf1, _ = catalog
        res = client.put(
            f"/api/v1/document-types/{dt_id}/legal-frameworks",
            json={"items": [{"legal_framework_id": lf1}, {"legal_framework_id": lf1}]},
            headers=admin_headers,
        )
        assert res.status_code == 422

    def test_invalid_validity_type(self, client, admin_headers, catalog):
        dt_id, lf1, _ = catalog
        res = client.put(
            f"/api/v1/document-types/{dt_id}/legal-frameworks",
            json={"items": [{"legal_framework_id": lf1, "validity_type": "forever"}]},
            headers=admin_headers,
        )
        assert res.status_code == 422

    def test_toggle_all(self, client, admin_headers, catalog):
        dt_id, _, _ = catalog
        res = client.post(f"/api/v1/document-types/{dt_id}/legal-frameworks/toggle-all",
                          json={"select_all": True, "is_required": True}, headers=admin_headers)
        assert res.get_json() == {"affected": 2}
        res = client.post(f"/api/v1/document-types/{dt_id}/legal-frameworks/toggle-all",
                          json={"select_all": False}, headers=admin_headers)
        assert res.get_json() == {"affected": 0}


# ═══════════════════════════════════════════════════════════════
# CONDITIONS
# ═══════════════════════════════════════════════════════════════

class TestConditions:
    def test_create_condition(self, client, admin_headers):
        res = client.post("/api/v1/conditions",
                          json={"name": "Apostilled", "code": "APOSTILLE", "relative_expiration_days": 30},
                          headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["is_required"] is True

    def test_link_existing_and_available(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        apostille = client.post("/api/v1/conditions", json={"name": "Apostilled"}, headers=admin_headers).get_json()
        client.post("/api/v1/conditions", json={"name": "Translated"}, headers=admin_headers)

        res = client.post(f"/api/v1/document-types/{dt_id}/conditions",
                          json={"condition_id": apostille["id"], "is_required": False}, headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["is_required"] is False
        assert res.get_json()["condition"]["name"] == "Apostilled"

        available = client.get(f"/api/v1/document-types/{dt_id}/conditions/available", headers=admin_headers)
        assert [c["name"] for c in available.get_json()] == ["Translated"]

    def test_link_twice_conflicts(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        cond_id = client.post("/api/v1/conditions", json={"name": "Apostilled"}, headers=admin_headers).get_json()["id"]
        client.post(f"/api/v1/document-types/{dt_id}/conditions", json={"condition_id": cond_id}, headers=admin_headers)
        res = client.post(f"/api/v1/document-types/{dt_id}/conditions",
                          json={"condition_id": cond_id}, headers=admin_headers)
        assert res.status_code == 409

    def test_create_and_link(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        res = client.post(f"/api/v1/document-types/{dt_id}/conditions",
                          json={"name": "Sworn translation"}, headers=admin_headers)
        assert res.status_code == 201
        links = client.get(f"/api/v1/document-types/{dt_id}/conditions", headers=admin_headers).get_json()
        assert [link["condition"]["name"] for link in links] == ["Sworn translation"]

    def test_link_requires_condition_or_name(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        res = client.post(f"/api/v1/document-types/{dt_id}/conditions", json={}, headers=admin_headers)
        assert res.status_code == 400

    def test_unlink(self, client, admin_headers):
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        link_id = client.post(f"/api/v1/document-types/{dt_id}/conditions",
                              json={"name": "Sworn translation"}, headers=admin_headers).get_json()["id"]
        assert client.delete(f"/api/v1/condition-links/{link_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/document-types/{dt_id}/conditions", headers=admin_headers).get_json() == []


# ═══════════════════════════════════════════════════════════════
# TEMPLATES
# ═══════════════════════════════════════════════════════════════

class TestTemplates:
    @pytest.fixture()
    def refs(self, client, admin_headers):
        pt_id = _create_process_type(client, admin_headers).get_json()["id"]
        dt_id = _create_document_type(client, admin_headers).get_json()["id"]
        return pt_id, dt_id

    def _create(self, client, headers, pt_id, dt_id, name="Work visa checklist"):
        return client.post(
            "/api/v1/document-templates",
            json={
                "name": name,
                "process_type_id": pt_id,
                "requirements": [{"document_type_id": dt_id, "is_required": True, "is_critical": True}],
            },
            headers=headers,
        )

    def test_create_with_requirements(self, client, admin_headers, refs):
        res = self._create(client, admin_headers, *refs)
        assert res.status_code == 201
        data = res.get_json()
        assert data["version"] == 1
        assert len(data["requirements"]) == 1
        assert data["requirements"][0]["is_critical"] is True

    def test_version_increments(self, client, admin_headers, refs):
        self._create(client, admin_headers, *refs)
        res = self._create(client, admin_headers, *refs, name="Work visa checklist 2025")
        assert res.get_json()["version"] == 2

    def test_requires_process_type(self, client, admin_headers):
        res = client.post("/api/v1/document-templates", json={"name": "No type"}, headers=admin_headers)
        assert res.status_code == 422

    def test_clone(self, client, admin_headers, refs):
        source = self._create(client, admin_headers, *refs).get_json()
        res = client.post(f"/api/v1/document-templates/{source['id']}/clone", headers=admin_headers)
        assert res.status_code == 201
        clone = res.get_json()
        assert clone["version"] == 2
        assert clone["is_active"] is False
        assert clone["name"] == "Work visa checklist (v2)"
        assert len(clone["requirements"]) == 1

    def test_add_and_reorder_requirements(self, client, admin_headers, refs):
        pt_id, dt_id = refs
        template = self._create(client, admin_headers, pt_id, dt_id).get_json()
        other_dt = _create_document_type(client, admin_headers, name="Diploma", code="DIPLOMA").get_json()["id"]
        res = client.post(f"/api/v1/document-templates/{template['id']}/requirements",
                          json={"document_type_id": other_dt}, headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["sort_order"] == 1

        first_id = template["requirements"][0]["id"]
        second_id = res.get_json()["id"]
        client.post(f"/api/v1/document-templates/{template['id']}/requirements/reorder",
                    json={"ids": [second_id, first_id]}, headers=admin_headers)
        detail = client.get(f"/api/v1/document-templates/{template['id']}", headers=admin_headers).get_json()
        assert [r["id"] for r in detail["requirements"]] == [second_id, first_id]

    def test_reorder_rejects_duplicates(self, client, admin_headers, refs):
        template = self._create(client, admin_headers, *refs).get_json()
        req_id = template["requirements"][0]["id"]
        res = client.post(f"/api/v1/document-templates/{template['id']}/requirements/reorder",
                          json={"ids": [req_id, req_id]}, headers=admin_headers)
        assert res.status_code == 422

    def test_delete_unused_template(self, client, admin_headers, refs):
        template = self._create(client, admin_headers, *refs).get_json()
        assert client.delete(f"/api/v1/document-templates/{template['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/document-templates/{template['id']}", headers=admin_headers).status_code == 404
