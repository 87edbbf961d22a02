"""Pure vote arithmetic for the activities board.

Two denominators are in play on purpose. ``vote_percentage`` divides yes
votes by everyone on the trip, so people who have not voted pull the bar
down. ``decide_outcome`` only weighs the votes actually cast. Product has
been asked whether these should agree; until then both stay as they are.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from planit.models.activities.activity import ActivityStatus
from planit.schemas.activities.vote import VoteOut, VoteTally

CENT = Decimal("0.01")


def count_votes(votes: Iterable[VoteOut]) -> Tuple[int, int]:
    yes = no = 0
    for vote in votes:
        if vote.vote:
            yes += 1
        else:
            no += 1
    return yes, no


def vote_percentage(yes: int, participant_count: int) -> int:
    if participant_count <= 0:
        return 0
    # Half rounds up: 1 of 8 shows 13%, not 12%
    ratio = Decimal(yes * 100) / Decimal(participant_count)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cost_per_person(cost: Optional[Decimal], participant_count: int) -> Optional[Decimal]:
    if cost is None or participant_count <= 0:
        return None
    return (Decimal(cost) / participant_count).quantize(CENT, rounding=ROUND_HALF_UP)


def decide_outcome(yes: int, no: int) -> ActivityStatus:
    """Strict majority of cast votes confirms; a tie needs more discussion."""
    return ActivityStatus.confirmed if yes > no else ActivityStatus.pending


def build_tally(votes: Iterable[VoteOut], participant_count: int) -> VoteTally:
    yes, no = count_votes(votes)
    return VoteTally(
        yes=yes,
        no=no,
        total=yes + no,
        participants=participant_count,
        percentage=vote_percentage(yes, participant_count),
    )
