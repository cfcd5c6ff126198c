import base64
from datetime import timedelta, timezone
from unittest.mock import MagicMock

import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from mailbox_admin.config.config import settings
from mailbox_admin.models import GoogleAuthModel
from mailbox_admin.models.base import utcnow
from mailbox_admin.services import gmail_service
from mailbox_admin.services.admin_service import GoogleConfigService


def encode(text: str) -> str:
    # Gmail quita el padding
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def metadata(message_id: str, subject: str, sender: str) -> dict:
    return {
        "id": message_id,
        "threadId": f"t-{message_id}",
        "snippet": f"snippet {message_id}",
        "internalDate": "1767268800000",
        "labelIds": ["INBOX", "UNREAD"],
        "payload": {
            "headers": [
                {"name": "Subject", "value": subject},
                {"name": "From", "value": sender},
                {"name": "To", "value": "me@example.com"},
                {"name": "Date", "value": "Thu, 1 Jan 2026 12:00:00 +0000"},
            ]
        },
    }


@pytest.fixture
def fake_service(db, monkeypatch):
    """Config activa con tokens y un cliente Gmail falso en lugar de la API real"""
    GoogleConfigService.add_config(
        db,
        {"client_id": "cid", "client_secret": "secret", "access_token": "ya29.token", "refresh_token": "1//r"},
        active=True,
    )
    service = MagicMock()
    monkeypatch.setattr(gmail_service, "build_gmail_service", lambda config, db=None: service)
    return service


def messages_api(service: MagicMock) -> MagicMock:
    return service.users.return_value.messages.return_value


def test_requires_session(client):
    response = client.get("/api/gmail/messages")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_google_not_connected(client, admin_headers):
    response = client.get("/api/gmail/messages", headers=admin_headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Google account not connected"}


def test_config_without_tokens_is_not_connected(client, admin_headers, db):
    GoogleConfigService.add_config(db, {"client_id": "cid", "client_secret": "secret"}, active=True)

    response = client.get("/api/gmail/messages/abc", headers=admin_headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Google account not connected"}


def test_list_messages(client, user_headers, fake_service):
    api = messages_api(fake_service)
    api.list.return_value.execute.return_value = {"messages": [{"id": "m1"}, {"id": "m2"}]}
    api.get.return_value.execute.side_effect = [
        metadata("m1", "Hello", "alice@example.com"),
        metadata("m2", "Invoice", "billing@example.com"),
    ]

    response = client.get("/api/gmail/messages", headers=user_headers)

    assert response.status_code == 200
    assert response.json() == [
        {
            "id": "m1",
            "threadId": "t-m1",
            "subject": "Hello",
            "from": "alice@example.com",
            "to": "me@example.com",
            "date": "Thu, 1 Jan 2026 12:00:00 +0000",
        },
        {
            "id": "m2",
            "threadId": "t-m2",
            "subject": "Invoice",
            "from": "billing@example.com",
            "to": "me@example.com",
            "date": "Thu, 1 Jan 2026 12:00:00 +0000",
        },
    ]
    api.list.assert_called_once_with(userId="me", maxResults=settings.GMAIL_PAGE_SIZE)
    api.get.assert_any_call(
        userId="me", id="m2", format="metadata", metadataHeaders=["Subject", "From", "To", "Date"]
    )


def test_empty_mailbox(client, admin_headers, fake_service):
    messages_api(fake_service).list.return_value.execute.return_value = {}

    response = client.get("/api/gmail/messages", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == []


def test_one_failed_message_fails_the_list(client, admin_headers, fake_service):
    api = messages_api(fake_service)
    api.list.return_value.execute.return_value = {"messages": [{"id": "m1"}, {"id": "m2"}]}
    api.get.return_value.execute.side_effect = [metadata("m1", "Hello", "a@example.com"), RuntimeError("quota")]

    response = client.get("/api/gmail/messages", headers=admin_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch emails"}


def test_message_detail_prefers_html(client, admin_headers, fake_service):
    messages_api(fake_service).get.return_value.execute.return_value = {
        "id": "m1",
        "threadId": "t1",
        "payload": {
            "mimeType": "multipart/mixed",
            "headers": [{"name": "subject", "value": "Report"}, {"name": "From", "value": "boss@example.com"}],
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/plain", "body": {"data": encode("plain version")}},
                        {"mimeType": "text/html", "body": {"data": encode("<p>html versión</p>")}},
                    ],
                },
                {"mimeType": "application/pdf", "filename": "report.pdf", "body": {"attachmentId": "att"}},
            ],
        },
    }

    response = client.get("/api/gmail/messages/m1", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "Report"
    assert body["from"] == "boss@example.com"
    assert body["to"] == ""
    assert body["body"] == "<p>html versión</p>"
    assert body["contentType"] == "html"
    messages_api(fake_service).get.assert_called_with(userId="me", id="m1", format="full")


def test_message_detail_plain_fallback(client, admin_headers, fake_service):
    messages_api(fake_service).get.return_value.execute.return_value = {
        "id": "m1",
        "payload": {
            "headers": [],
            "parts": [
                {"mimeType": "text/plain", "body": {"data": encode("first")}},
                {"mimeType": "text/plain", "body": {"data": encode("second")}},
            ],
        },
    }

    body = client.get("/api/gmail/messages/m1", headers=admin_headers).json()
    assert body["body"] == "first"
    assert body["contentType"] == "plain"


def test_message_detail_without_parts(client, admin_headers, fake_service):
    messages_api(fake_service).get.return_value.execute.return_value = {
        "id": "m1",
        "payload": {"headers": [], "body": {"data": encode("single part")}},
    }

    body = client.get("/api/gmail/messages/m1", headers=admin_headers).json()
    assert body["body"] == "single part"
    assert body["contentType"] == ""


def test_message_detail_vendor_error(client, admin_headers, fake_service):
    messages_api(fake_service).get.return_value.execute.side_effect = RuntimeError("404 from Google")

    response = client.get("/api/gmail/messages/missing", headers=admin_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch email"}


def test_decode_body_handles_missing_padding():
    assert gmail_service.decode_body(encode("ab")) == "ab"
    assert gmail_service.decode_body(encode("a+b/c?")) == "a+b/c?"
    assert gmail_service.decode_body(None) == ""


def test_message_to_email():
    email = gmail_service.message_to_email(metadata("m1", "Hello", "alice@example.com"))

    assert email.id == "m1"
    assert email.sender == "alice@example.com"
    assert email.body == "snippet m1"
    assert email.date == "2026-01-01T12:00:00+00:00"
    assert email.isRead is False
    assert email.isHidden is False


def test_build_service_requires_tokens():
    with pytest.raises(gmail_service.GmailNotConnected):
        gmail_service.build_gmail_service(None)


# ----------------------------
# Renovación de tokens
# ----------------------------

def stored_config(db, token_expiry):
    return GoogleConfigService.add_config(
        db,
        {
            "client_id": "cid",
            "client_secret": "secret",
            "access_token": "old-token",
            "refresh_token": "1//refresh",
            "token_expiry": token_expiry,
        },
        active=True,
    )


def test_credentials_carry_stored_expiry(db):
    expired = stored_config(db, utcnow() - timedelta(hours=2))
    assert gmail_service.build_credentials(expired).expired

    fresh = GoogleConfigService.update_config(db, expired.id, {"token_expiry": utcnow() + timedelta(hours=1)})
    assert not gmail_service.build_credentials(fresh).expired


def test_expired_token_is_refreshed_and_saved(db, monkeypatch):
    config = stored_config(db, utcnow() - timedelta(hours=2))
    new_expiry = utcnow().replace(tzinfo=None, microsecond=0) + timedelta(hours=1)

    def fake_refresh(self, request):
        self.token = "new-token"
        self.expiry = new_expiry

    monkeypatch.setattr(Credentials, "refresh", fake_refresh)
    monkeypatch.setattr(gmail_service, "build", lambda *args, **kwargs: "gmail-client")

    assert gmail_service.build_gmail_service(config, db) == "gmail-client"

    db.expire_all()
    row = db.get(GoogleAuthModel, config.id)
    assert row.access_token == "new-token"
    assert row.token_expiry == new_expiry.replace(tzinfo=timezone.utc)


def test_valid_token_is_not_refreshed(db, monkeypatch):
    config = stored_config(db, utcnow() + timedelta(hours=1))

    def fail_refresh(self, request):
        raise AssertionError("refresh should not be called")

    monkeypatch.setattr(Credentials, "refresh", fail_refresh)
    monkeypatch.setattr(gmail_service, "build", lambda *args, **kwargs: "gmail-client")

    assert gmail_service.build_gmail_service(config, db) == "gmail-client"
    assert db.get(GoogleAuthModel, config.id).access_token == "old-token"


def test_rejected_refresh_means_not_connected(client, admin_headers, db, monkeypatch):
    stored_config(db, utcnow() - timedelta(hours=2))

    def rejected_refresh(self, request):
        raise RefreshError("invalid_grant")

    monkeypatch.setattr(Credentials, "refresh", rejected_refresh)

    response = client.get("/api/gmail/messages", headers=admin_headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Google account not connected"}
