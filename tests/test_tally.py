from decimal import Decimal

from planit.models.activities.activity import ActivityStatus
from planit.schemas.activities.vote import VoteOut
from planit.services.activities.tally import (
    build_tally, cost_per_person, count_votes, decide_outcome, vote_percentage
)


def make_votes(*values):
    return [
        VoteOut(id=f"v{i}", activity_id="a1", user_id=f"u{i}", vote=value)
        for i, value in enumerate(values)
    ]


def test_percentage_uses_participant_denominator():
    # 2 yes out of 5 participants, regardless of how many voted
    assert vote_percentage(2, 5) == 40


def test_percentage_without_participants_is_zero():
    assert vote_percentage(3, 0) == 0


def test_percentage_rounds_half_up():
    assert vote_percentage(1, 8) == 13
    assert vote_percentage(1, 3) == 33
    assert vote_percentage(2, 3) == 67


def test_count_votes_splits_yes_and_no():
    assert count_votes(make_votes(True, False, True)) == (2, 1)
    assert count_votes([]) == (0, 0)


def test_outcome_needs_strict_majority():
    assert decide_outcome(2, 1) == ActivityStatus.confirmed
    assert decide_outcome(1, 1) == ActivityStatus.pending
    assert decide_outcome(1, 2) == ActivityStatus.pending


def test_cost_per_person():
    assert cost_per_person(Decimal("100"), 3) == Decimal("33.33")
    assert cost_per_person(Decimal("0"), 4) == Decimal("0.00")
    assert cost_per_person(None, 4) is None
    assert cost_per_person(Decimal("50"), 0) is None


def test_build_tally():
    tally = build_tally(make_votes(True, True, False), 5)
    assert (tally.yes, tally.no, tally.total, tally.participants) == (2, 1, 3, 5)
    assert tally.percentage == 40
