"""Per-firing dismissal session: solve N problems to silence the alarm."""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import REQUIRED_SOLVES
from .models import Problem
from .problems import check_answer, generate_problem


class ChallengeState(Enum):
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class ChallengeClosedError(RuntimeError):
    """Raised when an answer is submitted to a finished challenge."""


@dataclass
class AnswerResult:
    """Outcome of one submitted answer."""
    correct: bool
    complete: bool


class Challenge:
    """Dismissal flow for a single alarm firing."""

    def __init__(
        self,
        alarm_id: int,
        difficulty: str,
        required_count: int = REQUIRED_SOLVES,
        rng: Optional[random.Random] = None,
    ):
        if required_count < 1:
            raise ValueError("required_count must be at least 1")
        self.alarm_id = alarm_id
        self.difficulty = difficulty
        self.required_count = required_count
        self.solved_count = 0
        self.state = ChallengeState.AWAITING_ANSWER
        self._rng = rng
        # Raises InvalidAlarmError on a bad difficulty, before the
        # challenge is handed to anyone
        self.current_problem: Optional[Problem] = generate_problem(difficulty, rng)

    @property
    def is_open(self) -> bool:
        return self.state is ChallengeState.AWAITING_ANSWER

    def submit_answer(self, value) -> AnswerResult:
        """
        Grade an answer against the current problem.

        A correct answer counts towards required_count and replaces the
        problem; a wrong or non-numeric one leaves everything unchanged.
        """
        if not self.is_open:
            raise ChallengeClosedError(
                f"Challenge for alarm {self.alarm_id} is {self.state.value}"
            )

        if not check_answer(self.current_problem, value):
            return AnswerResult(correct=False, complete=False)

        self.solved_count += 1
        if self.solved_count >= self.required_count:
            self.state = ChallengeState.COMPLETE
            self.current_problem = None
            return AnswerResult(correct=True, complete=True)

        self.current_problem = generate_problem(self.difficulty, self._rng)
        return AnswerResult(correct=True, complete=False)

    def cancel(self) -> bool:
        """Cancel an open challenge. Returns False if it was already closed."""
        if not self.is_open:
            return False
        self.state = ChallengeState.CANCELLED
        self.current_problem = None
        return True

    def to_dict(self) -> dict:
        return {
            "alarmId": self.alarm_id,
            "solvedCount": self.solved_count,
            "requiredCount": self.required_count,
            "question": self.current_problem.question if self.current_problem else None,
            "state": self.state.value,
        }

    def __repr__(self):
        return f"<Challenge alarm={self.alarm_id} {self.solved_count}/{self.required_count} {self.state.value}>"
