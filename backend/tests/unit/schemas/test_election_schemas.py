"""
Unit Tests for election and student schemas (camelCase wire format)
"""
import pytest
from datetime import datetime, timezone, timedelta
from types import SimpleNamespace
from pydantic import ValidationError

from uniportal.models.election import CandidatePosition, ElectionStatus
from uniportal.models.student import StudentRole
from uniportal.schemas.election import ElectionCreate, ElectionResponse, VoteRequest
from uniportal.schemas.student import StudentRegister, StudentResponse


class TestElectionCreate:

    def test_camel_case_input(self):
        data = ElectionCreate.model_validate({
            "title": "CR 2026",
            "className": "CSE-1",
            "branch": "CSE",
            "acadmicYear": "E3",
            "candidates": [{"studentId": "a"}, {"studentId": "b", "position": "GR"}],
        })

        assert data.class_name == "CSE-1"
        assert data.academic_year == "E3"
        assert data.candidates[1].position == "GR"
        assert data.closes_at is None

    def test_closes_at_converted_to_naive_utc(self):
        data = ElectionCreate.model_validate({
            "title": "t", "className": "c", "branch": "b", "acadmicYear": "E1",
            "closesAt": "2026-10-20T10:00:00+05:30",
        })

        assert data.closes_at == datetime(2026, 10, 20, 4, 30)
        assert data.closes_at.tzinfo is None

    def test_naive_closes_at_kept(self):
        data = ElectionCreate(closes_at=datetime(2026, 1, 1, 12, 0))

        assert data.closes_at == datetime(2026, 1, 1, 12, 0)


class TestVoteRequest:

    def test_position_optional(self):
        vote = VoteRequest.model_validate({"candidateId": "abc"})

        assert vote.candidate_id == "abc"
        assert vote.position is None

    def test_position_parsed(self):
        assert VoteRequest.model_validate({"candidateId": "a", "position": "GR"}).position == CandidatePosition.GR

    def test_unknown_position_rejected(self):
        with pytest.raises(ValidationError):
            VoteRequest.model_validate({"candidateId": "a", "position": "VP"})


class TestElectionResponse:

    def test_serialises_from_attributes(self):
        student = SimpleNamespace(id="s1", name="Asha", email="asha@example.com", id_no="R1", class_name="CSE-1")
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        election = SimpleNamespace(
            id="e1", title="CR", class_name="CSE-1", branch="CSE", academic_year="E3",
            status=ElectionStatus.CLOSED, is_open=False, closes_at=now - timedelta(days=1),
            candidates=[SimpleNamespace(student=student, position=CandidatePosition.CR, votes=4)],
            voter_count=4, result_declared=True, is_draw=False, winner=student,
            winners=[SimpleNamespace(position=CandidatePosition.CR, student=student)],
            created_by=student, created_at=now, updated_at=now, closed_at=now,
        )

        body = ElectionResponse.model_validate(election).model_dump(by_alias=True, mode="json")

        assert body["className"] == "CSE-1"
        assert body["acadmicYear"] == "E3"
        assert body["isOpen"] is False
        assert body["resultDeclared"] is True
        assert body["isDraw"] is False
        assert body["voterCount"] == 4
        assert body["winner"]["idNo"] == "R1"
        assert body["winner"]["class"] == "CSE-1"
        assert body["winners"][0]["position"] == "CR"
        assert body["createdBy"]["name"] == "Asha"
        assert "voters" not in body


class TestStudentSchemas:

    def test_register_defaults_to_student(self):
        data = StudentRegister.model_validate({
            "idNo": "R1", "email": "a@example.com", "password": "secret1", "name": "A",
        })

        assert data.role == StudentRole.STUDENT

    def test_register_short_password(self):
        with pytest.raises(ValidationError):
            StudentRegister.model_validate({
                "idNo": "R1", "email": "a@example.com", "password": "123", "name": "A",
            })

    def test_register_bad_email(self):
        with pytest.raises(ValidationError):
            StudentRegister.model_validate({
                "idNo": "R1", "email": "not-an-email", "password": "secret1", "name": "A",
            })

    def test_response_uses_class_alias(self):
        student = SimpleNamespace(
            id="s1", id_no="R1", email="a@example.com", name="A", role=StudentRole.CR,
            class_name="CSE-1", branch="CSE", section="1", academic_year="E3",
            phone=None, is_active=True, created_at=datetime(2026, 1, 1),
        )

        body = StudentResponse.model_validate(student).model_dump(by_alias=True, mode="json")

        assert body["class"] == "CSE-1"
        assert body["idNo"] == "R1"
        assert body["role"] == "CR"
        assert "hashedPassword" not in body
