# /clonepoints/activity.py
# Append-only audit trail of administrative actions.

import logging
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models import ActivityLogEntry

logger = logging.getLogger(__name__)


class ActivityLog:
    """Records admin actions after they have been committed.

    Each entry is written in its own commit, so a failure here is rolled back
    and reported without touching the action it describes.
    """

    def record(self, admin_id, action, ip_address=None, details=None):
        entry = ActivityLogEntry(admin_id=admin_id, action=action, ip_address=ip_address, details=details)
        try:
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not record activity %r for admin %s", action, admin_id)
            return None
        return entry

    def recent(self, limit=50):
        stmt = (select(ActivityLogEntry)
                .order_by(ActivityLogEntry.timestamp.desc(), ActivityLogEntry.id.desc())
                .limit(limit))
        return db.session.execute(stmt).scalars().all()
