# ============================================================
# case_store.py — Case Lifecycle
# ============================================================

import logging
from typing import List, Optional

from errors import InvalidArgument, NotFound
from models import Case, CaseStatus, Severity
from policy import (
    Operation, authorize, enforce, coerce_enum, require_text,
    status_transition_allowed, check_identity_reference
)
from registry import role_of
from repository import Repository

logger = logging.getLogger(__name__)


class CaseStore:
    """
    Owns case creation, status changes, assignment, notes and deletion.

    Every mutation runs inside one store transaction and consults the
    authorization policy with the caller's role before touching state.
    """

    def __init__(self, repo: Repository):
        self.repo = repo

    async def _require_case(self, session, case_id: int):
        row = await self.repo.get_case_row(session, case_id)
        if row is None:
            raise NotFound(f"Case {case_id} not found")
        return row

    # ─────────────────────────────────────────────
    # CREATION
    # ─────────────────────────────────────────────

    async def create_case(self, caller: Optional[str], title: str, description: str, severity) -> int:
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            return await self.create_case_in(session, caller_row, title, description, severity)

    async def create_case_in(self, session, caller_row, title: str, description: str, severity) -> int:
        """Create a case inside an already open transaction"""
        enforce(authorize(role_of(caller_row), Operation.CREATE_CASE))
        require_text(title, "title")
        require_text(description, "description")
        severity = coerce_enum(Severity, severity, "severity")

        row = await self.repo.insert_case(
            session,
            title=title,
            description=description,
            severity=severity.value,
            reporter=caller_row.identity
        )
        return row.id

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    async def get_case_by_id(self, caller: Optional[str], case_id: int) -> Optional[Case]:
        """The case, or None when no case has this id"""
        async with self.repo.snapshot() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.READ_CASES, f"case {case_id}"))

            cases = await self.repo.read_cases(session, case_id=case_id)
            return cases[0] if cases else None

    async def get_all_cases(self, caller: Optional[str], status=None, severity=None) -> List[Case]:
        async with self.repo.snapshot() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.READ_CASES))

            status_filter = coerce_enum(CaseStatus, status, "status").value if status else None
            severity_filter = coerce_enum(Severity, severity, "severity").value if severity else None
            return await self.repo.read_cases(session, status=status_filter, severity=severity_filter)

    # ─────────────────────────────────────────────
    # MUTATIONS
    # ─────────────────────────────────────────────

    async def update_case_status(self, caller: Optional[str], case_id: int, new_status):
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.UPDATE_CASE_STATUS, f"case {case_id}"))
            target = coerce_enum(CaseStatus, new_status, "status")

            row = await self._require_case(session, case_id)
            current = CaseStatus(row.status)
            if not status_transition_allowed(current, target):
                raise InvalidArgument(
                    f"Case {case_id} cannot move from {current.value} to {target.value}"
                )

            row.status = target.value
            self.repo.touch(row)
            logger.info(f"✅ Case {case_id}: {current.value} → {target.value}")

    async def assign_case(self, caller: Optional[str], case_id: int, analyst: str):
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.ASSIGN_CASE, f"case {case_id}"))
            require_text(analyst, "analyst identity")

            row = await self._require_case(session, case_id)

            analyst_row = await self.repo.get_operator(session, analyst)
            check_identity_reference(
                analyst,
                registered=analyst_row is not None,
                strict=self.repo.strict_identity_references
            )

            row.assigned_analyst = analyst
            self.repo.touch(row)
            logger.info(f"✅ Case {case_id} assigned to {analyst}")

    async def add_note_to_case(self, caller: Optional[str], case_id: int, content: str):
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.ADD_NOTE, f"case {case_id}"))
            require_text(content, "content")

            row = await self._require_case(session, case_id)
            await self.repo.append_note(session, row, content, author=caller_row.name)

    async def delete_case(self, caller: Optional[str], case_id: int):
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.DELETE_CASE, f"case {case_id}"))

            await self._require_case(session, case_id)
            await self.repo.delete_case_row(session, case_id)
