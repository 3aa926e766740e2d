"""Arithmetic problem generation and grading."""

import math
import random
from typing import Optional

from .config import ANSWER_TOLERANCE
from .models import InvalidAlarmError, Problem

# Operand ceiling and allowed operators per difficulty
DIFFICULTIES = {
    "easy": {"max": 10, "ops": ("+", "-")},
    "medium": {"max": 20, "ops": ("+", "-", "×")},
    "hard": {"max": 100, "ops": ("+", "-", "×", "÷")},
}


def generate_problem(difficulty: str, rng: Optional[random.Random] = None) -> Problem:
    """
    Generate a two-operand problem for the given difficulty.

    Division problems are built from divisor * multiplier so the answer is
    always a whole number. Subtraction operands are ordered so the answer
    is never negative.
    """
    if difficulty not in DIFFICULTIES:
        raise InvalidAlarmError(f"Invalid difficulty level: {difficulty!r}")
    rng = rng or random

    params = DIFFICULTIES[difficulty]
    op = rng.choice(params["ops"])

    if op == "÷":
        b = rng.randint(1, 10)
        a = b * rng.randint(1, 10)
        answer = a / b
    else:
        a = rng.randint(1, params["max"])
        b = rng.randint(1, params["max"])
        if op == "-" and b > a:
            a, b = b, a
        if op == "+":
            answer = a + b
        elif op == "-":
            answer = a - b
        else:
            answer = a * b

    return Problem(
        question=f"{a} {op} {b} = ?",
        expected_answer=answer,
        left=a,
        operator=op,
        right=b,
    )


def parse_answer(value) -> Optional[float]:
    """Convert user input to a number, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def check_answer(problem: Problem, value) -> bool:
    """Grade an answer; unparseable input counts as wrong."""
    number = parse_answer(value)
    if number is None:
        return False
    return abs(number - problem.expected_answer) < ANSWER_TOLERANCE
