# ============================================================
# models.py — Case Desk Domain Models
# ============================================================

from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


# ─────────────────────────────────────────────
# Enums (closed sets)
# ─────────────────────────────────────────────

class Role(str, Enum):
    ADMIN = "admin"
    ANALYST = "analyst"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CaseStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "inProgress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class IncidentType(str, Enum):
    PHISHING = "phishing"
    MALWARE = "malware"
    DDOS = "ddos"
    DATA_BREACH = "dataBreach"
    UNAUTHORIZED_ACCESS = "unauthorizedAccess"
    OTHER = "other"


# ─────────────────────────────────────────────
# Core Models
# ─────────────────────────────────────────────

class OperatorProfile(BaseModel):
    """Registered operator"""
    identity: str
    name: str
    role: Role
    created_at: int

    class Config:
        use_enum_values = True


class Note(BaseModel):
    """Immutable annotation on a case"""
    content: str
    author: str  # display name at write time
    timestamp: int


class Case(BaseModel):
    """Tracked investigation"""
    id: int
    title: str
    description: str
    severity: Severity
    status: CaseStatus = CaseStatus.OPEN
    reporter: str
    assigned_analyst: Optional[str] = None
    created_at: int
    updated_at: int
    notes: List[Note] = Field(default_factory=list)

    class Config:
        use_enum_values = True


class IncidentReport(BaseModel):
    """Incident as filed; spawns exactly one case"""
    id: int
    title: str
    incident_type: IncidentType
    description: str
    affected_systems: str
    severity: Severity
    reporter_name: str
    created_at: int
    linked_case_id: int

    class Config:
        use_enum_values = True


# ─────────────────────────────────────────────
# API Request/Response Models
# ─────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str


class SetRoleRequest(BaseModel):
    role: str


class CreateCaseRequest(BaseModel):
    title: str
    description: str
    severity: str


class CreateCaseResponse(BaseModel):
    id: int


class UpdateStatusRequest(BaseModel):
    status: str


class AssignCaseRequest(BaseModel):
    analyst: str


class AddNoteRequest(BaseModel):
    content: str


class SubmitIncidentRequest(BaseModel):
    title: str
    incident_type: str
    description: str
    affected_systems: str
    severity: str
    reporter_name: str


class SubmitIncidentResponse(BaseModel):
    incident_id: int
    case_id: int


class IsAdminResponse(BaseModel):
    is_admin: bool
