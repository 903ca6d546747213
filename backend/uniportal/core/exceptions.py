"""
Custom Exceptions for the University Utility Portal
===================================================

Services raise these instead of HTTPException so the same rules hold when
they are called from scripts or tests. The API layer turns any PortalError
into a JSON error response using the class' status_code.

Usage:
    from uniportal.core.exceptions import ElectionNotFoundError

    if not election:
        raise ElectionNotFoundError(election_id)
"""

from typing import Optional, Any, Dict


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Identifier/password pair did not match"""

    def __init__(self):
        super().__init__("Invalid credentials")
        self.code = "INVALID_CREDENTIALS"


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "You are not authorised to perform this action"):
        super().__init__(message, code="FORBIDDEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class ElectionNotFoundError(ResourceNotFoundError):
    """Election not found"""

    def __init__(self, election_id: str):
        super().__init__("Election", election_id)


class StudentNotFoundError(ResourceNotFoundError):
    """Student (identity) not found"""

    def __init__(self, student_id: str):
        super().__init__("Student", student_id)


class CandidateNotFoundError(ResourceNotFoundError):
    """Candidate is not standing in the election"""

    def __init__(self, candidate_id: str, election_id: str):
        super().__init__("Candidate", candidate_id)
        self.message = "Candidate not found in this election"
        self.args = (self.message,)
        self.details["election_id"] = election_id


# ============================================
# Validation Errors (422-type)
# ============================================

class InvalidInputError(PortalError):
    """Input validation failed"""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="INVALID_INPUT", details=details)


class InvalidIdError(InvalidInputError):
    """An id is not a well-formed identifier"""

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid {field}", field=field)
        self.code = "INVALID_ID"
        self.details["value"] = str(value)


class InvalidCandidatesError(InvalidInputError):
    """Candidate list has the wrong size or shape"""

    def __init__(self, message: str):
        super().__init__(message, field="candidates")
        self.code = "INVALID_CANDIDATES"


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(PortalError):
    """Write conflicts with existing state"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class DuplicateVoteError(ConflictError):
    """Voter already has a ballot in this election"""

    def __init__(self, election_id: str):
        super().__init__("You have already voted in this election", code="ALREADY_VOTED")
        self.details["election_id"] = election_id


class StudentAlreadyExistsError(ConflictError):
    """idNo or email already registered"""

    def __init__(self):
        super().__init__("Student already registered", code="STUDENT_EXISTS")


# ============================================
# State Errors (400-type)
# ============================================

class InvalidStateError(PortalError):
    """Operation not allowed in the resource's current state"""

    status_code = 400

    def __init__(self, message: str, code: str = "INVALID_STATE"):
        super().__init__(message, code=code)


class ElectionClosedError(InvalidStateError):
    """Election is closed or past its deadline"""

    def __init__(self, election_id: str):
        super().__init__("Election has already been closed", code="ELECTION_CLOSED")
        self.details["election_id"] = election_id


class PayloadTooLargeError(PortalError):
    """Request body over the configured limit"""

    status_code = 413

    def __init__(self, content_length: int, max_size: int):
        super().__init__(
            f"Request body too large. Maximum size is {max_size} bytes",
            code="PAYLOAD_TOO_LARGE",
            details={"content_length": content_length, "max_size": max_size},
        )


# ============================================
# Internal Errors (500-type)
# ============================================

class InternalError(PortalError):
    """Storage or transaction failure"""

    status_code = 500

    def __init__(self, message: str = "Internal server error", code: str = "INTERNAL_ERROR"):
        super().__init__(message, code=code)


class RoleTransitionError(InternalError):
    """CR promotion could not be applied; the transaction must roll back"""

    def __init__(self, message: str, class_name: Optional[str] = None):
        super().__init__(message, code="ROLE_TRANSITION_FAILED")
        if class_name:
            self.details["class_name"] = class_name


class ElectionCloseError(InternalError):
    """Closing an election failed and nothing was persisted"""

    def __init__(self, election_id: str, attempts: int = 1):
        super().__init__("Failed to close election, please retry", code="ELECTION_CLOSE_FAILED")
        self.details = {"election_id": election_id, "attempts": attempts}


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
