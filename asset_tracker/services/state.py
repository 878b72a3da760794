"""
Status transitions shared by the workflow services.

A transition is a conditional UPDATE (``WHERE status IN allowed``): when two
requests race on the same record only one of them matches a row, the other
gets ``InvalidStateError``.
"""
from sqlalchemy import update
from sqlalchemy.orm import Session

from asset_tracker.core.errors import InvalidStateError


def transition(db: Session, record, allowed_from, to_status: str, verb: str, **values) -> None:
    model = type(record)
    allowed = [s.value if hasattr(s, "value") else s for s in allowed_from]
    current = record.status
    if current not in allowed:
        raise InvalidStateError(
            f"{model.__name__} cannot be {verb}. Current status: {current}",
            current_status=current,
        )

    result = db.execute(
        update(model)
        .where(model.id == record.id, model.status.in_(allowed))
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(record)
    if result.rowcount != 1:
        raise InvalidStateError(
            f"{model.__name__} cannot be {verb}. Current status: {record.status}",
            current_status=record.status,
        )
