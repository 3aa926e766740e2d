# tests/test_main.py
from datetime import datetime, timedelta

from alarm import main
from alarm.evaluator import evaluate
from alarm.models import Alarm


def test_demo_alarm_rings_next_minute():
    now = datetime(2024, 1, 7, 23, 59, 30)  # Sunday, just before midnight
    alarm = Alarm.from_dict({"id": 1, **main._demo_alarm(now)})
    assert alarm.time == "00:00"
    assert alarm.days == frozenset({"mon"})
    assert evaluate(now + timedelta(seconds=30), [alarm], set()) == [1]


def test_run_challenge_prompts_until_dismissed(loop, monkeypatch, monday_0700):
    loop.tick(monday_0700)
    answers = iter(["oops"] + [None] * 3)

    def fake_input(prompt):
        answer = next(answers)
        if answer is None:
            return str(loop.challenge(1).current_problem.expected_answer)
        return answer

    monkeypatch.setattr("builtins.input", fake_input)
    main._run_challenge(loop, 1)
    assert loop.challenge(1) is None


def test_run_challenge_stops_on_eof(loop, monkeypatch, monday_0700):
    loop.tick(monday_0700)

    def closed_input(prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", closed_input)
    main._run_challenge(loop, 1)
    assert loop.challenge(1) is not None
