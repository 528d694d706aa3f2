# Overview: Scheduled maintenance jobs; overdue invoices/deposits and expired quotes.

"""
Scheduled jobs, run by the cron endpoints or the `flask jobs` commands.

Both jobs are single bulk UPDATEs on SENT documents, so running them
twice on the same day changes nothing the second time.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Document
from facturflow.time_utils import utctoday


def update_overdue(today: date | None = None) -> int:
    """SENT invoices and deposits whose due date has passed -> OVERDUE."""
    today = today or utctoday()
    result = db.session.execute(
        update(Document)
        .where(
            Document.doc_type.in_(("INVOICE", "DEPOSIT")),
            Document.status == "SENT",
            Document.due_date.is_not(None),
            Document.due_date < today,
        )
        .values(status="OVERDUE", version_id=Document.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    count = result.rowcount or 0
    current_app.logger.info("Overdue update done today=%s updated=%s", today.isoformat(), count)
    return count


def expire_quotes(today: date | None = None) -> int:
    """SENT quotes past their validity date -> CANCELLED."""
    today = today or utctoday()
    result = db.session.execute(
        update(Document)
        .where(
            Document.doc_type == "QUOTE",
            Document.status == "SENT",
            Document.valid_until.is_not(None),
            Document.valid_until < today,
        )
        .values(status="CANCELLED", version_id=Document.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    count = result.rowcount or 0
    current_app.logger.info("Quote expiry done today=%s updated=%s", today.isoformat(), count)
    return count
