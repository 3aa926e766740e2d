# tests/test_challenge.py
import random

import pytest

from alarm.challenge import Challenge, ChallengeClosedError, ChallengeState
from alarm.models import InvalidAlarmError


def _solve(challenge):
    return challenge.submit_answer(challenge.current_problem.expected_answer)


def test_new_challenge_has_a_problem():
    challenge = Challenge(1, "easy", rng=random.Random(1))
    assert challenge.state is ChallengeState.AWAITING_ANSWER
    assert challenge.solved_count == 0
    assert challenge.required_count == 3
    assert challenge.current_problem is not None


def test_three_correct_answers_complete():
    challenge = Challenge(1, "hard", rng=random.Random(1))
    assert _solve(challenge).complete is False
    assert _solve(challenge).complete is False
    result = _solve(challenge)
    assert result.correct and result.complete
    assert challenge.state is ChallengeState.COMPLETE
    assert challenge.solved_count == 3
    assert challenge.current_problem is None


def test_correct_answer_replaces_problem_object():
    challenge = Challenge(1, "medium", rng=random.Random(2))
    first = challenge.current_problem
    _solve(challenge)
    assert challenge.solved_count == 1
    assert challenge.current_problem is not first


def test_wrong_answer_changes_nothing():
    challenge = Challenge(1, "easy", rng=random.Random(1))
    problem = challenge.current_problem
    result = challenge.submit_answer(problem.expected_answer + 1)
    assert result.correct is False
    assert result.complete is False
    assert challenge.solved_count == 0
    assert challenge.current_problem is problem


def test_non_numeric_answer_is_wrong_not_fatal():
    challenge = Challenge(1, "easy", rng=random.Random(1))
    assert challenge.submit_answer("banana").correct is False
    assert challenge.is_open


def test_custom_required_count():
    challenge = Challenge(1, "easy", required_count=1, rng=random.Random(1))
    assert _solve(challenge).complete is True


def test_invalid_difficulty_rejected_at_construction():
    with pytest.raises(InvalidAlarmError):
        Challenge(1, "extreme")


def test_required_count_must_be_positive():
    with pytest.raises(ValueError):
        Challenge(1, "easy", required_count=0)


def test_submit_after_complete_raises():
    challenge = Challenge(1, "easy", required_count=1, rng=random.Random(1))
    _solve(challenge)
    with pytest.raises(ChallengeClosedError):
        challenge.submit_answer(0)


def test_cancel():
    challenge = Challenge(1, "easy", rng=random.Random(1))
    assert challenge.cancel() is True
    assert challenge.state is ChallengeState.CANCELLED
    assert challenge.cancel() is False
    with pytest.raises(ChallengeClosedError):
        challenge.submit_answer(1)


def test_to_dict_hides_answer():
    challenge = Challenge(4, "easy", rng=random.Random(1))
    data = challenge.to_dict()
    assert data == {
        "alarmId": 4,
        "solvedCount": 0,
        "requiredCount": 3,
        "question": challenge.current_problem.question,
        "state": "awaiting_answer",
    }
