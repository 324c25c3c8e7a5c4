# ============================================================
# policy.py — Authorization Policy & Transition Rules
# ============================================================

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from errors import Forbidden, InvalidArgument, NotFound, Unauthenticated
from models import CaseStatus, Role


class Operation(str, Enum):
    REGISTER_SELF = "register_self"
    VIEW_OWN_PROFILE = "view_own_profile"
    VIEW_PROFILE = "view_profile"
    LIST_PROFILES = "list_profiles"
    SET_ROLE = "set_role"
    CREATE_CASE = "create_case"
    READ_CASES = "read_cases"
    UPDATE_CASE_STATUS = "update_case_status"
    ASSIGN_CASE = "assign_case"
    ADD_NOTE = "add_note"
    DELETE_CASE = "delete_case"
    SUBMIT_INCIDENT = "submit_incident"
    READ_INCIDENTS = "read_incidents"


class DenyKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[DenyKind] = None


ALLOW = Decision(allowed=True)

ANY_OPERATOR = frozenset({Role.ADMIN, Role.ANALYST})
ADMIN_ONLY = frozenset({Role.ADMIN})

# Operations open to callers without a profile
OPEN_OPERATIONS = frozenset({
    Operation.REGISTER_SELF,
    Operation.VIEW_OWN_PROFILE,
})

RULES = {
    Operation.VIEW_PROFILE: ADMIN_ONLY,
    Operation.LIST_PROFILES: ADMIN_ONLY,
    Operation.SET_ROLE: ADMIN_ONLY,
    Operation.CREATE_CASE: ANY_OPERATOR,
    Operation.READ_CASES: ANY_OPERATOR,
    Operation.UPDATE_CASE_STATUS: ANY_OPERATOR,
    Operation.ASSIGN_CASE: ADMIN_ONLY,
    Operation.ADD_NOTE: ANY_OPERATOR,
    Operation.DELETE_CASE: ADMIN_ONLY,
    Operation.SUBMIT_INCIDENT: ANY_OPERATOR,
    Operation.READ_INCIDENTS: ANY_OPERATOR,
}


def authorize(role: Optional[Role], operation: Operation, target: Any = None) -> Decision:
    """
    Decide whether a caller holding `role` may perform `operation`.

    `role` is None for callers without an operator profile. `target` names
    the entity being acted on and only feeds the denial reason.
    """
    if operation in OPEN_OPERATIONS:
        return ALLOW

    what = operation.value if target is None else f"{operation.value} on {target}"

    if role is None:
        return Decision(
            allowed=False,
            reason=f"Caller is not a registered operator ({what})",
            kind=DenyKind.UNAUTHENTICATED
        )

    if Role(role) in RULES[operation]:
        return ALLOW

    return Decision(
        allowed=False,
        reason=f"Role '{Role(role).value}' may not perform {what}",
        kind=DenyKind.FORBIDDEN
    )


def enforce(decision: Decision):
    """Raise the error matching a denial; no-op on allow"""
    if decision.allowed:
        return
    if decision.kind == DenyKind.UNAUTHENTICATED:
        raise Unauthenticated(decision.reason)
    raise Forbidden(decision.reason)


# ─────────────────────────────────────────────
# Case status transitions
# ─────────────────────────────────────────────

def status_transition_allowed(current: CaseStatus, target: CaseStatus) -> bool:
    """Every status is reachable from every other, including reopening closed cases"""
    return True


# ─────────────────────────────────────────────
# References to other identities
# ─────────────────────────────────────────────

def check_identity_reference(identity: str, registered: bool, strict: bool = False):
    """
    Single hook for references to another operator (assignee, role target).

    Lax by default: unregistered identities are accepted.
    """
    if strict and not registered:
        raise NotFound(f"No operator registered for identity '{identity}'")


# ─────────────────────────────────────────────
# Boundary coercion
# ─────────────────────────────────────────────

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """Map an input value onto a closed enum; unknown values are rejected"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidArgument(f"Unrecognized {field} '{value}' (expected one of: {allowed})")


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgument(f"{field} must not be empty")
    return value
