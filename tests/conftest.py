import pytest
import os
import tempfile
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["MEDIA_DIR"] = tempfile.mkdtemp(prefix="perfhub-media-")
os.environ.pop("BOOTSTRAP_ADMIN_EMAIL", None)
os.environ.pop("BOOTSTRAP_ADMIN_PASSWORD", None)

from perfhub.core.config import DEFAULT_STORE_INDEXES, parse_indexes
from perfhub.database import init_db
from perfhub.main import app
from perfhub.services.identity import IdentityProvider, get_identity
from perfhub.services.photos import LocalPhotoStore, get_photo_store
from perfhub.services.session import connect_profile_sync
from perfhub.store import get_store
from perfhub.store.sql import SqlRecordStore
from fastapi.testclient import TestClient

ADMIN_EMAIL = "admin@perfhub.io"
ADMIN_PASSWORD = "AdminPassword123!"
EMPLOYEE_EMAIL = "jane@perfhub.io"
EMPLOYEE_PASSWORD = "Password123!"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database per test; StaticPool shares it across threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def store(session_factory):
    """SQL record store with the production index rules."""
    store = SqlRecordStore(session_factory, indexes=parse_indexes(DEFAULT_STORE_INDEXES))
    yield store
    store.close()


@pytest.fixture(scope="function")
def identity(session_factory, store):
    """Identity provider wired to the profile-sync listener, as in production."""
    provider = IdentityProvider(session_factory)
    connect_profile_sync(provider, store)
    return provider


@pytest.fixture(scope="function")
def photo_store(tmp_path):
    return LocalPhotoStore(str(tmp_path), "/media")


@pytest.fixture(scope="function")
def client(store, identity, photo_store):
    """TestClient with the record store, identity provider and photo store swapped in."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_photo_store] = lambda: photo_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_user(identity, store):
    """Admin login plus its ``users/{uid}`` profile."""
    from perfhub.core.init_system import ensure_admin
    return ensure_admin(identity, store, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin User")


@pytest.fixture(scope="function")
def employee(identity, store):
    """An onboarded employee: login, profile and employee record."""
    from perfhub.services.employees import EmployeeService
    return EmployeeService(store).onboard(
        identity,
        name="Jane Doe",
        email=EMPLOYEE_EMAIL,
        password=EMPLOYEE_PASSWORD,
        position="Engineer",
        department="R&D",
    )


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to mint access tokens for a uid."""
    from perfhub.services.auth import create_access_token

    def _get_token(uid, role=None):
        return create_access_token(data={"sub": uid, "role": role})
    return _get_token


@pytest.fixture(scope="function")
def admin_headers(admin_user, get_token):
    return {"Authorization": f"Bearer {get_token(admin_user['uid'], 'admin')}"}


@pytest.fixture(scope="function")
def employee_headers(employee, get_token):
    return {"Authorization": f"Bearer {get_token(employee['userId'], 'employee')}"}
