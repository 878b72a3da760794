import logging

from sqlalchemy.orm import Session

from asset_tracker.models.audit_log import AuditLog
from asset_tracker.services.pagination import paginate

logger = logging.getLogger(__name__)


def record(db: Session, actor, action: str, model: str, record_id, **details) -> AuditLog:
    """Queue an audit row in the caller's transaction."""
    entry = AuditLog(
        action=action,
        model=model,
        record_id=record_id,
        user_id=actor.id if actor is not None else None,
        details=_jsonable(details) or None,
    )
    db.add(entry)
    logger.debug(f"[Audit] {model}.{action} {record_id}")
    return entry


def _jsonable(details: dict) -> dict:
    out = {}
    for key, value in details.items():
        if value is None or isinstance(value, (bool, int, float, str)):
            out[key] = value
        elif isinstance(value, (list, tuple)):
            out[key] = [v if isinstance(v, (bool, int, float, str)) else str(v) for v in value]
        else:
            out[key] = str(value)
    return out


def list_logs(
    db: Session,
    model: str | None = None,
    action: str | None = None,
    user_id=None,
    page: int = 1,
    limit: int | None = None,
):
    q = db.query(AuditLog)
    if model:
        q = q.filter(AuditLog.model == model)
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id:
        q = q.filter(AuditLog.user_id == user_id)
    return paginate(q.order_by(AuditLog.created_at.desc()), page, limit)
