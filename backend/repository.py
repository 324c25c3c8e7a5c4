# ============================================================
# repository.py — Data Layer (the owned store object)
# ============================================================

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError

from db_models import OperatorDB, CaseDB, CaseNoteDB, IncidentReportDB, IdSequenceDB
from errors import InternalError
from models import OperatorProfile, Case, Note, IncidentReport

logger = logging.getLogger(__name__)

CASE_SEQUENCE = "case"
INCIDENT_SEQUENCE = "incident"

# Ids are stored as signed 64-bit integers
MAX_ID = 2 ** 63 - 1


def storable_id(value) -> bool:
    return isinstance(value, int) and 1 <= value <= MAX_ID


class EngineClock:
    """Nanosecond wall clock that never repeats or goes backwards"""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        ts = time.time_ns()
        if ts <= self._last:
            ts = self._last + 1
        self._last = ts
        return ts


# ─────────────────────────────────────────────
# Row → model conversion (copies, never live rows)
# ─────────────────────────────────────────────

def to_profile(row: OperatorDB) -> OperatorProfile:
    return OperatorProfile(
        identity=row.identity,
        name=row.name,
        role=row.role,
        created_at=row.created_at
    )


def to_note(row: CaseNoteDB) -> Note:
    return Note(content=row.content, author=row.author, timestamp=row.timestamp)


def to_case(row: CaseDB, notes: List[CaseNoteDB]) -> Case:
    return Case(
        id=row.id,
        title=row.title,
        description=row.description,
        severity=row.severity,
        status=row.status,
        reporter=row.reporter,
        assigned_analyst=row.assigned_analyst,
        created_at=row.created_at,
        updated_at=row.updated_at,
        notes=[to_note(n) for n in notes]
    )


def to_incident(row: IncidentReportDB) -> IncidentReport:
    return IncidentReport(
        id=row.id,
        title=row.title,
        incident_type=row.incident_type,
        description=row.description,
        affected_systems=row.affected_systems,
        severity=row.severity,
        reporter_name=row.reporter_name,
        created_at=row.created_at,
        linked_case_id=row.linked_case_id
    )


class Repository:
    """
    Store object shared by the registry, case store and intake.

    Writes go through `transaction()`, which serializes them behind one
    lock so id allocation and per-case mutations have a single order.
    Reads go through `snapshot()` and never wait on the lock.
    """

    def __init__(self, session_factory, clock: Optional[EngineClock] = None,
                 strict_identity_references: bool = False):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()
        self.clock = clock or EngineClock()
        self.strict_identity_references = strict_identity_references

    # ─────────────────────────────────────────────
    # SESSIONS
    # ─────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self):
        """Serialized read-write unit; commits on exit, rolls back on any error"""
        async with self._write_lock:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    logger.error(f"❌ Integrity violation, transaction rolled back: {e}")
                    raise InternalError(f"Store integrity violation: {e.orig}") from e
                except Exception:
                    await session.rollback()
                    raise

    @asynccontextmanager
    async def snapshot(self):
        async with self._session_factory() as session:
            yield session

    # ─────────────────────────────────────────────
    # ID ALLOCATION
    # ─────────────────────────────────────────────

    async def allocate_id(self, session, sequence: str) -> int:
        """Next id of a sequence; rolled back together with the caller's transaction"""
        result = await session.execute(
            select(IdSequenceDB)
            .where(IdSequenceDB.name == sequence)
            .with_for_update()
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = IdSequenceDB(name=sequence, last_value=0)
            session.add(row)
        row.last_value = row.last_value + 1
        await session.flush()
        return row.last_value

    # ─────────────────────────────────────────────
    # OPERATOR OPERATIONS
    # ─────────────────────────────────────────────

    async def get_operator(self, session, identity: Optional[str]) -> Optional[OperatorDB]:
        if not identity:
            return None
        result = await session.execute(
            select(OperatorDB).where(OperatorDB.identity == identity)
        )
        return result.scalar_one_or_none()

    async def count_operators(self, session) -> int:
        result = await session.execute(select(func.count()).select_from(OperatorDB))
        return result.scalar_one()

    async def count_admins(self, session) -> int:
        result = await session.execute(
            select(func.count()).select_from(OperatorDB).where(OperatorDB.role == "admin")
        )
        return result.scalar_one()

    async def insert_operator(self, session, identity: str, name: str, role: str) -> OperatorDB:
        result = await session.execute(select(func.coalesce(func.max(OperatorDB.seq), 0)))
        seq = result.scalar_one() + 1

        row = OperatorDB(
            identity=identity,
            name=name,
            role=role,
            created_at=self.clock.now(),
            seq=seq
        )
        session.add(row)
        await session.flush()
        logger.info(f"✅ Registered operator {identity} as {role}")
        return row

    async def list_operators(self, session) -> List[OperatorDB]:
        result = await session.execute(select(OperatorDB).order_by(OperatorDB.seq))
        return list(result.scalars().all())

    # ─────────────────────────────────────────────
    # CASE OPERATIONS
    # ─────────────────────────────────────────────

    async def insert_case(self, session, title: str, description: str,
                          severity: str, reporter: str) -> CaseDB:
        case_id = await self.allocate_id(session, CASE_SEQUENCE)

        if await session.get(CaseDB, case_id) is not None:
            logger.error(f"❌ Allocated case id {case_id} already exists")
            raise InternalError(f"Case id collision on {case_id}")

        now = self.clock.now()
        row = CaseDB(
            id=case_id,
            title=title,
            description=description,
            severity=severity,
            status="open",
            reporter=reporter,
            assigned_analyst=None,
            created_at=now,
            updated_at=now
        )
        session.add(row)
        await session.flush()
        logger.info(f"✅ Created case {case_id}")
        return row

    async def get_case_row(self, session, case_id: int) -> Optional[CaseDB]:
        if not storable_id(case_id):
            return None
        result = await session.execute(select(CaseDB).where(CaseDB.id == case_id))
        return result.scalar_one_or_none()

    def touch(self, row: CaseDB):
        row.updated_at = max(self.clock.now(), row.created_at)

    async def append_note(self, session, row: CaseDB, content: str, author: str) -> CaseNoteDB:
        result = await session.execute(
            select(func.coalesce(func.max(CaseNoteDB.position), 0))
            .where(CaseNoteDB.case_id == row.id)
        )
        position = result.scalar_one() + 1

        note = CaseNoteDB(
            case_id=row.id,
            position=position,
            content=content,
            author=author,
            timestamp=self.clock.now()
        )
        session.add(note)
        row.updated_at = max(note.timestamp, row.created_at)
        await session.flush()
        logger.info(f"✅ Added note #{position} to case {row.id}")
        return note

    async def delete_case_row(self, session, case_id: int):
        await session.execute(delete(CaseNoteDB).where(CaseNoteDB.case_id == case_id))
        await session.execute(delete(CaseDB).where(CaseDB.id == case_id))
        logger.info(f"✅ Deleted case {case_id}")

    async def read_cases(self, session, case_id: Optional[int] = None,
                         status: Optional[str] = None,
                         severity: Optional[str] = None) -> List[Case]:
        """
        Cases with their notes, in id order.
        One joined statement, so a case and its notes come from the same state.
        """
        if case_id is not None and not storable_id(case_id):
            return []

        query = (
            select(CaseDB, CaseNoteDB)
            .outerjoin(CaseNoteDB, CaseNoteDB.case_id == CaseDB.id)
            .order_by(CaseDB.id, CaseNoteDB.position)
        )
        if case_id is not None:
            query = query.where(CaseDB.id == case_id)
        if status is not None:
            query = query.where(CaseDB.status == status)
        if severity is not None:
            query = query.where(CaseDB.severity == severity)

        result = await session.execute(query)

        rows: Dict[int, CaseDB] = {}
        notes: Dict[int, List[CaseNoteDB]] = {}
        for case_row, note_row in result.all():
            if case_row.id not in rows:
                rows[case_row.id] = case_row
                notes[case_row.id] = []
            if note_row is not None:
                notes[case_row.id].append(note_row)

        return [to_case(rows[cid], notes[cid]) for cid in rows]

    # ─────────────────────────────────────────────
    # INCIDENT OPERATIONS
    # ─────────────────────────────────────────────

    async def insert_incident(self, session, incident_id: int, title: str,
                              incident_type: str, description: str,
                              affected_systems: str, severity: str,
                              reporter_name: str, linked_case_id: int) -> IncidentReportDB:
        if await session.get(IncidentReportDB, incident_id) is not None:
            logger.error(f"❌ Allocated incident id {incident_id} already exists")
            raise InternalError(f"Incident id collision on {incident_id}")

        row = IncidentReportDB(
            id=incident_id,
            title=title,
            incident_type=incident_type,
            description=description,
            affected_systems=affected_systems,
            severity=severity,
            reporter_name=reporter_name,
            created_at=self.clock.now(),
            linked_case_id=linked_case_id
        )
        session.add(row)
        await session.flush()
        logger.info(f"✅ Recorded incident {incident_id} → case {linked_case_id}")
        return row

    async def read_incidents(self, session, incident_id: Optional[int] = None) -> List[IncidentReport]:
        if incident_id is not None and not storable_id(incident_id):
            return []
        query = select(IncidentReportDB).order_by(IncidentReportDB.id)
        if incident_id is not None:
            query = query.where(IncidentReportDB.id == incident_id)
        result = await session.execute(query)
        return [to_incident(r) for r in result.scalars().all()]
