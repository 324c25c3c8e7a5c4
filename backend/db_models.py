# ============================================================
# db_models.py — Database Schema
# ============================================================

from sqlalchemy import Column, String, Text, Integer, BigInteger, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class OperatorDB(Base):
    """Registered operators"""
    __tablename__ = "operators"

    identity = Column(String, primary_key=True)
    name = Column(Text, nullable=False)
    role = Column(String, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    # Insertion order for listings
    seq = Column(Integer, nullable=False, unique=True)


class CaseDB(Base):
    """Investigation cases"""
    __tablename__ = "cases"

    # Allocated from id_sequences, never autoincremented
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String, nullable=False)
    status = Column(String, nullable=False, default="open")

    reporter = Column(String, nullable=False)
    assigned_analyst = Column(String, nullable=True)

    # Engine clock, nanoseconds
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)


class CaseNoteDB(Base):
    """Append-only investigation log per case"""
    __tablename__ = "case_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_id = Column(
        BigInteger,
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    author = Column(Text, nullable=False)
    timestamp = Column(BigInteger, nullable=False)


class IncidentReportDB(Base):
    """As-reported incidents, each linked to the case it spawned"""
    __tablename__ = "incident_reports"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(Text, nullable=False)
    incident_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    affected_systems = Column(Text, nullable=False)
    severity = Column(String, nullable=False)
    reporter_name = Column(Text, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    # No foreign key: the case may be deleted later, the report stays as filed
    linked_case_id = Column(BigInteger, nullable=False, index=True)


class IdSequenceDB(Base):
    """Last allocated id per entity kind"""
    __tablename__ = "id_sequences"

    name = Column(String, primary_key=True)
    last_value = Column(BigInteger, nullable=False, default=0)
