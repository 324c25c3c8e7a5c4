# ============================================================
# intake.py — Incident Intake
# ============================================================

import logging
from typing import List, Optional, Tuple

from case_store import CaseStore
from models import IncidentReport, IncidentType, Severity
from policy import Operation, authorize, enforce, coerce_enum, require_text
from registry import role_of
from repository import Repository, INCIDENT_SEQUENCE

logger = logging.getLogger(__name__)


class IncidentIntake:
    """Records incident reports, each together with the case it spawns"""

    def __init__(self, repo: Repository, cases: CaseStore):
        self.repo = repo
        self.cases = cases

    async def submit_incident_report(
        self,
        caller: Optional[str],
        title: str,
        incident_type,
        description: str,
        affected_systems: str,
        severity,
        reporter_name: str
    ) -> Tuple[int, int]:
        """
        Persist the report and its linked case as one unit.

        Returns (incident_id, case_id). If anything fails, neither record
        exists afterwards and neither id sequence has advanced.
        """
        async with self.repo.transaction() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.SUBMIT_INCIDENT))

            require_text(title, "title")
            require_text(description, "description")
            require_text(affected_systems, "affected systems")
            require_text(reporter_name, "reporter name")
            incident_type = coerce_enum(IncidentType, incident_type, "incident type")
            severity = coerce_enum(Severity, severity, "severity")

            incident_id = await self.repo.allocate_id(session, INCIDENT_SEQUENCE)
            case_id = await self.cases.create_case_in(
                session, caller_row, title, description, severity
            )

            await self.repo.insert_incident(
                session,
                incident_id=incident_id,
                title=title,
                incident_type=incident_type.value,
                description=description,
                affected_systems=affected_systems,
                severity=severity.value,
                reporter_name=reporter_name,
                linked_case_id=case_id
            )

        logger.info(f"✅ Incident {incident_id} submitted by {caller}, case {case_id} opened")
        return incident_id, case_id

    async def get_all_incident_reports(self, caller: Optional[str]) -> List[IncidentReport]:
        async with self.repo.snapshot() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.READ_INCIDENTS))
            return await self.repo.read_incidents(session)

    async def get_incident_report_by_id(self, caller: Optional[str], incident_id: int) -> Optional[IncidentReport]:
        async with self.repo.snapshot() as session:
            caller_row = await self.repo.get_operator(session, caller)
            enforce(authorize(role_of(caller_row), Operation.READ_INCIDENTS, f"incident {incident_id}"))
            reports = await self.repo.read_incidents(session, incident_id=incident_id)
            return reports[0] if reports else None
