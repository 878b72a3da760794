"""
Access scoping policy.

One pure decision, ``can_access_base(actor, base_id)``, used by every
workflow instead of per-route role closures. An actor is anything with
``id``, ``role`` and ``assigned_base_id`` (in practice the authenticated
``User``).
"""
from typing import Iterable

from asset_tracker.core.errors import AccessDeniedError
from asset_tracker.models.enums import Role

# Roles that are not tied to a home base
UNSCOPED_ROLES = {Role.ADMIN.value, Role.LOGISTICS_OFFICER.value}


def _same(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def is_admin(actor) -> bool:
    return actor.role == Role.ADMIN.value


def is_logistics(actor) -> bool:
    return actor.role in UNSCOPED_ROLES


def is_base_commander(actor) -> bool:
    return actor.role == Role.BASE_COMMANDER.value


def can_access_base(actor, base_id) -> bool:
    if actor.role in UNSCOPED_ROLES:
        return True
    return _same(actor.assigned_base_id, base_id)


def can_access_any(actor, base_ids: Iterable) -> bool:
    return any(can_access_base(actor, b) for b in base_ids)


def ensure_base_access(actor, base_ids, message: str = "Access denied for this base") -> None:
    if not isinstance(base_ids, (list, tuple, set)):
        base_ids = [base_ids]
    if not can_access_any(actor, base_ids):
        raise AccessDeniedError(message)


def scoped_base_id(actor, requested_base_id=None):
    """Base filter to apply to a read: forced home base for commanders."""
    if is_base_commander(actor):
        return actor.assigned_base_id
    return requested_base_id


def is_actor(actor, user_id) -> bool:
    return _same(actor.id, user_id)
