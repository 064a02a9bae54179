"""
Shared pytest fixtures for the casedesk test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - company / other_company: Pre-created Company entities
    - admin_user / client_user: Pre-created UserProfile entities
    - admin_headers / client_headers: Bearer headers for those profiles
    - make_user / headers_for: factories for extra profiles
    - fail_inserts: make a model's INSERTs fail (side-effect failure tests)
"""

import email_validator
import pytest

from casedesk import create_app
from casedesk.models import db as _db
from casedesk.models.company import Company
from casedesk.models.user import ROLE_ADMIN, ROLE_CLIENT, UserProfile
from casedesk.services.jwt_service import generate_access_token

# Test fixtures use reserved ".test" domains; allow them in the test run only.
email_validator.TEST_ENVIRONMENT = True


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Domain fixtures ──────────────────────────────────────────────────────


def make_profile(email, role=ROLE_CLIENT, company_id=None, full_name=None, password_hash=None):
    profile = UserProfile(
        email=email,
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        company_id=company_id,
        password_hash=password_hash,
    )
    _db.session.add(profile)
    _db.session.commit()
    return profile


def auth_headers(profile):
    token = generate_access_token(profile.id, profile.role, profile.company_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def company():
    c = Company(name="Acme Energia Ltda", tax_id="12345678000190")
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture()
def other_company():
    c = Company(name="Globex do Brasil", tax_id="98765432000110")
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture()
def admin_user():
    return make_profile("admin@agency.test", role=ROLE_ADMIN, full_name="Agency Admin")


@pytest.fixture()
def client_user(company):
    return make_profile("hr@acme.test", role=ROLE_CLIENT, company_id=company.id, full_name="Acme HR")


@pytest.fixture()
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture()
def client_headers(client_user):
    return auth_headers(client_user)


@pytest.fixture()
def make_user():
    """Factory: ``make_user(email, role="client", company_id=None)`` -> UserProfile."""
    return make_profile


@pytest.fixture()
def headers_for():
    """Factory: ``headers_for(profile)`` -> Bearer header dict."""
    return auth_headers


@pytest.fixture()
def fail_inserts():
    """Factory: ``fail_inserts(Model)`` makes every INSERT of that model raise SQLAlchemyError."""
    from sqlalchemy import event
    from sqlalchemy.exc import SQLAlchemyError

    def _boom(mapper, connection, target):
        raise SQLAlchemyError(f"{type(target).__name__} store unavailable")

    registered = []

    def install(model):
        event.listen(model, "before_insert", _boom)
        registered.append(model)

    yield install
    for model in registered:
        event.remove(model, "before_insert", _boom)
