from uniportal.services.election_service import ElectionService
from uniportal.services.student_service import StudentService
from uniportal.services.role_transition import promote_to_cr, RoleTransition
from uniportal.services.tally import tally_votes, TallyResult, TallyOutcome

__all__ = [
    "ElectionService",
    "StudentService",
    "promote_to_cr",
    "RoleTransition",
    "tally_votes",
    "TallyResult",
    "TallyOutcome",
]
