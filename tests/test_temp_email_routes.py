import os
import uuid
from datetime import datetime, timedelta, timezone

from main import app
from mailbox_admin.services.temp_email_store import FileTempEmailStore, _to_ns, get_temp_email_store

BASE = "/api/emails/temp"


def test_store_and_fetch_email(client, temp_store):
    content = "From: a@example.com\r\nSubject: Hi\r\n\r\nBody"

    response = client.post(BASE, json={"content": content})
    assert response.status_code == 200
    temp_id = response.json()["tempId"]

    response = client.get(f"{BASE}/{temp_id}")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == content

    response = client.delete(f"{BASE}/{temp_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.get(f"{BASE}/{temp_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Email not found"}


def test_missing_content_is_rejected(client, temp_store):
    response = client.post(BASE, json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Email content is required"}

    response = client.post(BASE, json={"content": ""})
    assert response.status_code == 400
    assert response.json() == {"error": "Email content is required"}


def test_post_without_body(client, temp_store):
    response = client.post(BASE)
    assert response.status_code == 400
    assert response.json() == {"error": "Email content is required"}


def test_invalid_temp_id(client, temp_store):
    response = client.get(f"{BASE}/not-a-uuid")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid temp ID"}


def test_delete_unknown_id(client, temp_store):
    response = client.delete(f"{BASE}/{uuid.uuid4()}")
    assert response.status_code == 200
    assert response.json() == {"success": False}


def test_unsupported_method(client, temp_store):
    response = client.put(f"{BASE}/{uuid.uuid4()}", json={})
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_save_failure_returns_500(client, tmp_path):
    class BrokenStore(FileTempEmailStore):
        async def save(self, content: str) -> str:
            raise OSError("disk full")

    app.dependency_overrides[get_temp_email_store] = lambda: BrokenStore(tmp_path / "broken")

    response = client.post(BASE, json={"content": "x"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save email temporarily"}


def test_saving_sweeps_expired_emails(client, temp_store):
    expired = temp_store.directory / f"{uuid.uuid4()}.eml"
    expired.write_text("old", encoding="utf-8")
    old_ns = _to_ns(datetime.now(timezone.utc) - timedelta(hours=2))
    os.utime(expired, ns=(old_ns, old_ns))

    response = client.post(BASE, json={"content": "new"})

    assert response.status_code == 200
    assert not expired.exists()
    assert (temp_store.directory / f"{response.json()['tempId']}.eml").exists()
