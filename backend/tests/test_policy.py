"""
Tests for the Authorization Policy

Verifies:
- Role rules per operation
- Unregistered callers are unauthenticated
- Every status transition is permitted
- Enum and text checks at the boundary
- Identity reference checks in lax and strict mode
"""

import pytest

from errors import Forbidden, InvalidArgument, NotFound, Unauthenticated
from models import CaseStatus, Role, Severity
from policy import (
    Operation, DenyKind, authorize, enforce, status_transition_allowed,
    check_identity_reference, coerce_enum, require_text
)

ADMIN_ONLY_OPS = [
    Operation.VIEW_PROFILE,
    Operation.LIST_PROFILES,
    Operation.SET_ROLE,
    Operation.ASSIGN_CASE,
    Operation.DELETE_CASE,
]

OPERATOR_OPS = [
    Operation.CREATE_CASE,
    Operation.READ_CASES,
    Operation.UPDATE_CASE_STATUS,
    Operation.ADD_NOTE,
    Operation.SUBMIT_INCIDENT,
    Operation.READ_INCIDENTS,
]


@pytest.mark.parametrize("operation", ADMIN_ONLY_OPS + OPERATOR_OPS)
def test_admin_may_do_everything(operation):
    assert authorize(Role.ADMIN, operation).allowed


@pytest.mark.parametrize("operation", OPERATOR_OPS)
def test_analyst_may_do_operator_work(operation):
    assert authorize(Role.ANALYST, operation).allowed


@pytest.mark.parametrize("operation", ADMIN_ONLY_OPS)
def test_analyst_is_forbidden_admin_work(operation):
    decision = authorize(Role.ANALYST, operation, "case 7")
    assert not decision.allowed
    assert decision.kind == DenyKind.FORBIDDEN
    assert "case 7" in decision.reason


@pytest.mark.parametrize("operation", ADMIN_ONLY_OPS + OPERATOR_OPS)
def test_unregistered_caller_is_unauthenticated(operation):
    decision = authorize(None, operation)
    assert not decision.allowed
    assert decision.kind == DenyKind.UNAUTHENTICATED


@pytest.mark.parametrize("operation", [Operation.REGISTER_SELF, Operation.VIEW_OWN_PROFILE])
def test_open_operations_need_no_profile(operation):
    assert authorize(None, operation).allowed


def test_role_given_as_plain_string():
    assert authorize("admin", Operation.DELETE_CASE).allowed
    assert not authorize("analyst", Operation.DELETE_CASE).allowed


def test_enforce_raises_matching_error():
    enforce(authorize(Role.ADMIN, Operation.SET_ROLE))

    with pytest.raises(Unauthenticated):
        enforce(authorize(None, Operation.CREATE_CASE))
    with pytest.raises(Forbidden):
        enforce(authorize(Role.ANALYST, Operation.SET_ROLE))


@pytest.mark.parametrize("current", list(CaseStatus))
@pytest.mark.parametrize("target", list(CaseStatus))
def test_every_status_transition_is_permitted(current, target):
    assert status_transition_allowed(current, target)


def test_identity_reference_hook():
    check_identity_reference("ghost", registered=False)
    check_identity_reference("bob", registered=True, strict=True)
    with pytest.raises(NotFound):
        check_identity_reference("ghost", registered=False, strict=True)


def test_coerce_enum_rejects_unknown_values():
    assert coerce_enum(Severity, "critical", "severity") is Severity.CRITICAL
    assert coerce_enum(Severity, Severity.LOW, "severity") is Severity.LOW

    with pytest.raises(InvalidArgument):
        coerce_enum(Severity, "urgent", "severity")
    with pytest.raises(InvalidArgument):
        coerce_enum(CaseStatus, "in_progress", "status")
    with pytest.raises(InvalidArgument):
        coerce_enum(Role, None, "role")


@pytest.mark.parametrize("value", ["", "   ", None])
def test_require_text_rejects_empty(value):
    with pytest.raises(InvalidArgument):
        require_text(value, "title")
