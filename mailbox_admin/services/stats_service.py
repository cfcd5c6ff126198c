from datetime import datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
import logging

from ..models.base import as_utc, utcnow
from ..models.email_model import EmailModel

logger = logging.getLogger(__name__)

STATS_DAYS = 7
RECENT_EMAILS_LIMIT = 5


def parse_email_date(value: str) -> Optional[datetime]:
    """Fecha ISO-8601 (mock, internalDate) o RFC 2822 (cabecera Date de Gmail)"""
    try:
        return as_utc(datetime.fromisoformat(value))
    except (TypeError, ValueError):
        pass
    try:
        return as_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Fecha de correo no reconocida: {value!r}")
        return None


def email_stats(emails: List[EmailModel], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Total de correos, los más recientes y el conteo por día (UTC) de los
    últimos STATS_DAYS días, hoy incluido, en orden cronológico.
    """
    now = as_utc(now) or utcnow()
    today = now.date()
    daily_counts = {
        (today - timedelta(days=offset)).isoformat(): 0
        for offset in range(STATS_DAYS - 1, -1, -1)
    }

    dated = []
    for email in emails:
        received = parse_email_date(email.date)
        if received is None:
            continue
        dated.append((received, email))
        day = received.date().isoformat()
        if day in daily_counts:
            daily_counts[day] += 1

    dated.sort(key=lambda item: item[0], reverse=True)

    return {
        "totalEmails": len(emails),
        "recentEmails": [
            {"id": email.id, "to": email.to, "subject": email.subject, "date": email.date}
            for _, email in dated[:RECENT_EMAILS_LIMIT]
        ],
        "dailyEmailCounts": [{"date": day, "count": count} for day, count in daily_counts.items()],
    }
