"""
Vote tally for class representative elections.

Pure functions only: no database, no clock. The lifecycle service feeds the
CR candidates of an election in submission order and applies the result.

Ties are never broken. Two or more candidates sharing the top count (> 0)
is a draw, even when other candidates trail behind them.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple
import enum

from uniportal.models.election import CandidatePosition


class TallyOutcome(str, enum.Enum):
    NO_CANDIDATES = "no_candidates"
    NO_VOTES_CAST = "no_votes_cast"
    CLEAR_WINNER = "clear_winner"
    DRAW = "draw"


@dataclass(frozen=True)
class DeclaredWinner:
    position: CandidatePosition
    student_id: str


@dataclass(frozen=True)
class TallyResult:
    outcome: TallyOutcome
    winner_id: Optional[str] = None
    winners: List[DeclaredWinner] = field(default_factory=list)
    is_draw: bool = False
    top_votes: int = 0
    # Candidates sharing the top count; only populated for a draw
    tied_ids: List[str] = field(default_factory=list)

    @property
    def has_winner(self) -> bool:
        return self.outcome == TallyOutcome.CLEAR_WINNER


def tally_votes(candidates: Iterable[Tuple[str, int]]) -> TallyResult:
    """
    Classify (student_id, votes) pairs into a tally result.

    >>> tally_votes([("a", 5), ("b", 3)]).winner_id
    'a'
    >>> tally_votes([("a", 5), ("b", 5), ("c", 2)]).is_draw
    True
    """
    entries = list(candidates)
    if not entries:
        return TallyResult(outcome=TallyOutcome.NO_CANDIDATES)

    for student_id, votes in entries:
        if votes is None or votes < 0:
            raise ValueError(f"Invalid vote count {votes!r} for candidate {student_id}")

    top_votes = max(votes for _, votes in entries)
    if top_votes == 0:
        return TallyResult(outcome=TallyOutcome.NO_VOTES_CAST)

    leaders = [student_id for student_id, votes in entries if votes == top_votes]
    if len(leaders) > 1:
        return TallyResult(
            outcome=TallyOutcome.DRAW,
            is_draw=True,
            top_votes=top_votes,
            tied_ids=leaders,
        )

    winner_id = leaders[0]
    return TallyResult(
        outcome=TallyOutcome.CLEAR_WINNER,
        winner_id=winner_id,
        winners=[DeclaredWinner(position=CandidatePosition.CR, student_id=winner_id)],
        top_votes=top_votes,
    )
