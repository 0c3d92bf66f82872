"""Role capability tables for appointment operations."""

from collections.abc import Iterable

from app.core.exceptions import ConflictException
from app.core.identity import Role

SCHEDULED_AT = "scheduled_at"
STATUS = "status"
REASON = "reason"
CONTRAINDICATIONS = "contraindications"
CANCEL = "cancel"

# Roles allowed to book
CREATE_ROLES: frozenset[Role] = frozenset({Role.PATIENT})

# Fields each role may change through an update
MUTABLE_FIELDS: dict[Role, frozenset[str]] = {
    Role.ADMIN: frozenset({SCHEDULED_AT, STATUS, REASON, CONTRAINDICATIONS}),
    Role.DOCTOR: frozenset({STATUS}),
    Role.PATIENT: frozenset({SCHEDULED_AT, REASON, CONTRAINDICATIONS}),
}

# Actions a role may only take before the notice deadline
NOTICE_BOUND: dict[Role, frozenset[str]] = {
    Role.ADMIN: frozenset(),
    Role.DOCTOR: frozenset(),
    Role.PATIENT: frozenset({SCHEDULED_AT, CANCEL}),
}

# Roles limited to appointments they are a party to
OWNER_ONLY: frozenset[Role] = frozenset({Role.DOCTOR, Role.PATIENT})

# Request field names as shown to clients
_FIELD_LABELS = {
    SCHEDULED_AT: "appointmentDate",
    STATUS: "status",
    REASON: "reason",
    CONTRAINDICATIONS: "contraindications",
}


def can_create(role: Role) -> bool:
    return role in CREATE_ROLES


def requires_ownership(role: Role) -> bool:
    return role in OWNER_ONLY


def is_notice_bound(role: Role, action: str) -> bool:
    return action in NOTICE_BOUND[role]


def check_update_fields(role: Role, fields: Iterable[str]) -> None:
    """
    Reject an update carrying any field the role may not change.

    The caller is otherwise authorized, so this is a business conflict
    rather than a permission failure.

    Raises:
        ConflictException: Listing every forbidden field supplied
    """
    forbidden = sorted(set(fields) - MUTABLE_FIELDS[role])
    if forbidden:
        labels = ", ".join(_FIELD_LABELS.get(field, field) for field in forbidden)
        raise ConflictException(f"A {role.value} cannot modify: {labels}")
