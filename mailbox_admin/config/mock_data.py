from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from mailbox_admin.models.email_model import EmailModel
from mailbox_admin.models.google_auth_model import (
    DEFAULT_AUTH_URI,
    DEFAULT_CERT_URL,
    DEFAULT_TOKEN_URI,
)

# Datos de demostración, con la misma forma que las entidades reales

MOCK_ACCESS_TOKENS: List[Dict] = [
    {
        "id": "5f0c6c64-5b7e-4c4f-9a55-0d1f1d2e9a01",
        "accessToken": "token123",
        "isBlocked": False
    },
    {
        "id": "5f0c6c64-5b7e-4c4f-9a55-0d1f1d2e9a02",
        "accessToken": "token456",
        "isBlocked": True
    }
]

MOCK_GOOGLE_CONFIGS: List[Dict] = [
    {
        "id": "7a2d9e10-3c41-4f7b-8d2e-6b5a4c3d2e01",
        "clientId": "000000000000-demo.apps.googleusercontent.com",
        "clientSecret": "GOCSPX-demo-client-secret",
        "projectId": "mailbox-admin-demo",
        "authUri": DEFAULT_AUTH_URI,
        "tokenUri": DEFAULT_TOKEN_URI,
        "authProviderCertUrl": DEFAULT_CERT_URL,
        "isActive": True
    }
]

# (id, from, subject, body, días atrás, leído, oculto)
_MOCK_EMAILS = [
    (
        "9b1e8a2c-0d3f-4e5a-8b7c-1a2b3c4d5e01",
        "netflix@netflix.com",
        "Your Netflix subscription",
        "Thank you for subscribing to Netflix. Your subscription is active and you can start watching right away.",
        1, False, False,
    ),
    (
        "9b1e8a2c-0d3f-4e5a-8b7c-1a2b3c4d5e02",
        "billing@netflix.com",
        "Netflix billing receipt",
        "Your payment of $9.99 was successfully processed for your monthly Netflix subscription.",
        2, True, False,
    ),
    (
        "9b1e8a2c-0d3f-4e5a-8b7c-1a2b3c4d5e03",
        "info@netflix.com",
        "New titles on Netflix this week",
        "Check out the latest movies and shows added to Netflix this week. Don't miss our new exciting original series!",
        3, True, True,
    ),
    (
        "9b1e8a2c-0d3f-4e5a-8b7c-1a2b3c4d5e04",
        "no-reply@gmail.com",
        "Security alert for your Google Account",
        "We detected a new sign-in to your Google Account on a Windows device. If this was you, you don't need to do anything.",
        5, False, False,
    ),
    (
        "9b1e8a2c-0d3f-4e5a-8b7c-1a2b3c4d5e05",
        "support@gmail.com",
        "Your storage is almost full",
        "You're running out of storage and won't be able to send or receive emails when you run out. Consider upgrading your storage plan.",
        6, True, False,
    ),
]

MOCK_RECIPIENT = "user@example.com"

def get_mock_emails(now: Optional[datetime] = None) -> List[EmailModel]:
    """Correos de ejemplo con fechas relativas a `now`"""
    now = now or datetime.now(timezone.utc)
    return [
        EmailModel(
            id=email_id,
            sender=sender,
            to=MOCK_RECIPIENT,
            subject=subject,
            body=body,
            date=(now - timedelta(days=days_ago)).isoformat(),
            isRead=is_read,
            isHidden=is_hidden,
        )
        for email_id, sender, subject, body, days_ago, is_read, is_hidden in _MOCK_EMAILS
    ]
