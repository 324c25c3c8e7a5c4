"""
Tests for Incident Intake

Verifies:
- Submission creates the report and its linked case together
- Failed submissions leave neither record behind and consume no ids
- Incident ids run on their own sequence
"""

import pytest

from errors import InternalError, InvalidArgument, Unauthenticated
from models import CaseStatus, IncidentType, Severity
from repository import Repository


def phish(**overrides):
    fields = dict(
        title="Phish",
        incident_type=IncidentType.PHISHING,
        description="Credential harvesting mail to finance",
        affected_systems="mail gateway",
        severity=Severity.MEDIUM,
        reporter_name="Bob",
    )
    fields.update(overrides)
    return fields


async def test_submit_creates_linked_case(intake, cases, operators):
    admin, analyst = operators

    incident_id, case_id = await intake.submit_incident_report(analyst, **phish())
    assert (incident_id, case_id) == (1, 1)

    case = await cases.get_case_by_id(admin, case_id)
    assert case.title == "Phish"
    assert case.description == "Credential harvesting mail to finance"
    assert case.severity == Severity.MEDIUM
    assert case.status == CaseStatus.OPEN
    assert case.reporter == analyst

    report = await intake.get_incident_report_by_id(admin, incident_id)
    assert report.linked_case_id == 1
    assert report.incident_type == IncidentType.PHISHING
    assert report.reporter_name == "Bob"
    assert report.affected_systems == "mail gateway"


async def test_reporter_name_is_free_text(intake, operators):
    _, analyst = operators
    incident_id, _ = await intake.submit_incident_report(analyst, **phish(reporter_name="Front desk"))
    report = await intake.get_incident_report_by_id(analyst, incident_id)
    assert report.reporter_name == "Front desk"


async def test_incident_and_case_sequences_are_independent(intake, cases, operators):
    _, analyst = operators
    await cases.create_case(analyst, "manual", "d", "low")
    await cases.create_case(analyst, "manual", "d", "low")

    assert await intake.submit_incident_report(analyst, **phish()) == (1, 3)
    assert await intake.submit_incident_report(analyst, **phish(incident_type="ddos")) == (2, 4)


@pytest.mark.parametrize("overrides", [
    {"title": ""},
    {"description": ""},
    {"affected_systems": " "},
    {"reporter_name": ""},
    {"incident_type": "spam"},
    {"severity": "urgent"},
])
async def test_invalid_submission_persists_nothing(intake, cases, operators, overrides):
    _, analyst = operators

    with pytest.raises(InvalidArgument):
        await intake.submit_incident_report(analyst, **phish(**overrides))

    assert await intake.get_all_incident_reports(analyst) == []
    assert await cases.get_all_cases(analyst) == []
    assert await intake.submit_incident_report(analyst, **phish()) == (1, 1)


async def test_case_failure_rolls_back_incident(intake, cases, repo, operators, monkeypatch):
    _, analyst = operators

    async def broken_insert(self, *args, **kwargs):
        raise InternalError("simulated case write failure")

    monkeypatch.setattr(Repository, "insert_case", broken_insert)

    with pytest.raises(InternalError):
        await intake.submit_incident_report(analyst, **phish())

    monkeypatch.undo()

    assert await intake.get_all_incident_reports(analyst) == []
    assert await cases.get_all_cases(analyst) == []
    assert await intake.submit_incident_report(analyst, **phish()) == (1, 1)


async def test_unregistered_caller_cannot_submit(intake, operators):
    with pytest.raises(Unauthenticated):
        await intake.submit_incident_report("stranger", **phish())
    with pytest.raises(Unauthenticated):
        await intake.get_all_incident_reports("stranger")


async def test_incident_reads(intake, cases, operators):
    admin, analyst = operators
    await intake.submit_incident_report(analyst, **phish())
    await intake.submit_incident_report(admin, **phish(title="Ransomware", incident_type="malware"))

    reports = await intake.get_all_incident_reports(analyst)
    assert [r.id for r in reports] == [1, 2]
    assert [r.linked_case_id for r in reports] == [1, 2]
    assert await intake.get_incident_report_by_id(analyst, 3) is None


async def test_report_survives_case_deletion(intake, cases, operators):
    admin, analyst = operators
    incident_id, case_id = await intake.submit_incident_report(analyst, **phish())

    await cases.delete_case(admin, case_id)

    report = await intake.get_incident_report_by_id(admin, incident_id)
    assert report.linked_case_id == case_id
    assert await cases.get_case_by_id(admin, case_id) is None


async def test_incident_ids_beyond_storage_range_are_missing(intake, operators):
    _, analyst = operators
    await intake.submit_incident_report(analyst, **phish())

    assert await intake.get_incident_report_by_id(analyst, 2 ** 70) is None
    assert await intake.get_incident_report_by_id(analyst, 0) is None
    assert len(await intake.get_all_incident_reports(analyst)) == 1
