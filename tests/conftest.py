import os
import tempfile

# La configuración se lee al importar, así que el entorno va primero
_TMP_DIR = tempfile.mkdtemp(prefix="mailbox-admin-tests-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["TEMP_EMAILS_DIR"] = os.path.join(_TMP_DIR, "temp_emails")
os.environ["USE_MOCK_DATA"] = "true"
os.environ["ADMIN_EMAIL"] = "admin@test.local"
os.environ["ADMIN_PASSWORD"] = "admin-pass"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from main import app
from mailbox_admin.config.database import create_admin_user, create_initial_mock_data, engine
from mailbox_admin.services.temp_email_store import FileTempEmailStore, get_temp_email_store

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "admin-pass"


@pytest.fixture(autouse=True)
def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    create_admin_user()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def temp_store(tmp_path):
    store = FileTempEmailStore(tmp_path / "temp_emails")
    app.dependency_overrides[get_temp_email_store] = lambda: store
    return store


@pytest.fixture
def mock_rows():
    create_initial_mock_data()


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/auth/sign-in/", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def user_headers(client, mock_rows):
    response = client.post("/api/auth/token-login", json={"token": "token123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
