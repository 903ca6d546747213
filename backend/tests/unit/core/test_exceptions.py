"""
Unit Tests for the exception hierarchy and its HTTP mapping
"""
import pytest

from uniportal.core.exceptions import (
    PortalError,
    AuthenticationError,
    AuthorizationError,
    CandidateNotFoundError,
    ConflictError,
    DuplicateVoteError,
    ElectionCloseError,
    ElectionClosedError,
    ElectionNotFoundError,
    InternalError,
    InvalidCandidatesError,
    InvalidIdError,
    InvalidInputError,
    InvalidStateError,
    PayloadTooLargeError,
    ResourceNotFoundError,
    RoleTransitionError,
    StudentNotFoundError,
    error_response,
)


class TestStatusCodes:

    @pytest.mark.parametrize("error, status_code", [
        (InvalidInputError("bad"), 422),
        (InvalidIdError("candidateId", "x"), 422),
        (InvalidCandidatesError("too few"), 422),
        (AuthorizationError(), 403),
        (ElectionNotFoundError("e1"), 404),
        (StudentNotFoundError("s1"), 404),
        (CandidateNotFoundError("c1", "e1"), 404),
        (DuplicateVoteError("e1"), 409),
        (ElectionClosedError("e1"), 400),
        (RoleTransitionError("boom", class_name="CSE-1"), 500),
        (ElectionCloseError("e1", attempts=3), 500),
        (AuthenticationError(), 401),
        (PayloadTooLargeError(2048, 1024), 413),
    ])
    def test_status_code(self, error, status_code):
        assert error.status_code == status_code

    def test_hierarchy(self):
        assert issubclass(ElectionNotFoundError, ResourceNotFoundError)
        assert issubclass(DuplicateVoteError, ConflictError)
        assert issubclass(ElectionClosedError, InvalidStateError)
        assert issubclass(RoleTransitionError, InternalError)
        assert all(issubclass(cls, PortalError) for cls in (
            InvalidInputError, AuthorizationError, ResourceNotFoundError,
            ConflictError, InvalidStateError, InternalError, AuthenticationError,
        ))


class TestPayloads:

    def test_not_found_details(self):
        error = ElectionNotFoundError("e1")

        assert error.code == "ELECTION_NOT_FOUND"
        assert error.details == {"resource_type": "Election", "resource_id": "e1"}

    def test_candidate_not_found_message(self):
        error = CandidateNotFoundError("c1", "e1")

        assert error.message == "Candidate not found in this election"
        assert str(error) == "Candidate not found in this election"
        assert error.details["election_id"] == "e1"

    def test_duplicate_vote_code(self):
        assert DuplicateVoteError("e1").code == "ALREADY_VOTED"

    def test_closed_message(self):
        assert ElectionClosedError("e1").message == "Election has already been closed"

    def test_error_response_shape(self):
        body = error_response(InvalidIdError("electionId", "123"))

        assert body["success"] is False
        assert body["error"]["code"] == "INVALID_ID"
        assert body["error"]["details"] == {"field": "electionId", "value": "123"}
