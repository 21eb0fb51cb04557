import logging
import time

import pytest

from vericuda.core.errors import ConfigurationError
from vericuda.core.models import Obligation, ProverAnswer, ProverVerdict
from vericuda.core.prover.race import ProverRace


class _TimedHandle:
    def __init__(self, name: str, answer: ProverAnswer, delay: float, output: str = "") -> None:
        self.name = name
        self.answer = answer
        self.delay = delay
        self.output = output
        self.started = time.monotonic()
        self.cancelled = False
        self.polls = 0

    def poll(self):
        self.polls += 1
        elapsed = time.monotonic() - self.started
        if elapsed >= self.delay:
            return ProverVerdict(prover=self.name, answer=self.answer, output=self.output, elapsed=elapsed)
        return None

    def cancel(self):
        self.cancelled = True
        return ProverVerdict(prover=self.name, answer=ProverAnswer.KILLED)


def _launcher(plan, handles):
    def launch(name, obligation, time_limit, memory_limit):
        answer, delay, output = plan[name]
        handle = _TimedHandle(name, answer, delay, output)
        handles[name] = handle
        return handle

    return launch


def _obligation() -> Obligation:
    return Obligation(goal="(< i n)", declarations=("(declare-const i Int)", "(declare-const n Int)"))


def test_first_valid_answer_cancels_the_other_provers() -> None:
    handles = {}
    plan = {
        "p1": (ProverAnswer.INVALID, 0.1, ""),
        "p2": (ProverAnswer.VALID, 0.01, "unsat"),
        "p3": (ProverAnswer.INVALID, 0.1, ""),
    }
    race = ProverRace(["p1", "p2", "p3"], _launcher(plan, handles), poll_interval=0.002)

    started = time.monotonic()
    outcome = race.run(_obligation(), time_limit=1, memory_limit=100)
    elapsed = time.monotonic() - started

    assert outcome.proved
    assert outcome.winner == "p2"
    assert elapsed < 0.09
    assert handles["p1"].cancelled
    assert handles["p3"].cancelled
    assert not handles["p2"].cancelled
    answers = {item.prover: item.answer for item in outcome.verdicts}
    assert answers == {"p1": ProverAnswer.KILLED, "p2": ProverAnswer.VALID, "p3": ProverAnswer.KILLED}


def test_race_fails_when_no_prover_is_valid() -> None:
    handles = {}
    plan = {
        "p1": (ProverAnswer.INVALID, 0.0, "sat"),
        "p2": (ProverAnswer.TIMEOUT, 0.01, ""),
    }
    race = ProverRace(["p1", "p2"], _launcher(plan, handles), poll_interval=0.002)
    outcome = race.run(_obligation(), time_limit=1, memory_limit=100)
    assert not outcome.proved
    assert outcome.winner is None
    assert not any(handle.cancelled for handle in handles.values())
    assert len(outcome.verdicts) == 2


def test_race_requires_at_least_one_prover() -> None:
    launched = []
    race = ProverRace([], lambda *args: launched.append(args), poll_interval=0.001)
    with pytest.raises(ConfigurationError):
        race.race(_obligation(), time_limit=1, memory_limit=100)
    assert launched == []


def test_launch_failure_does_not_abort_the_race() -> None:
    handles = {}
    plan = {"good": (ProverAnswer.VALID, 0.0, "unsat")}
    inner = _launcher(plan, handles)

    def launch(name, obligation, time_limit, memory_limit):
        if name == "missing":
            raise FileNotFoundError("missing: command not found")
        return inner(name, obligation, time_limit, memory_limit)

    race = ProverRace(["missing", "good"], launch, poll_interval=0.001)
    outcome = race.run(_obligation(), time_limit=1, memory_limit=100)
    assert outcome.proved
    assert outcome.verdicts[0].answer == ProverAnswer.FAILURE
    assert race.launches == 1


def test_all_launch_failures_are_a_proof_failure() -> None:
    def launch(name, obligation, time_limit, memory_limit):
        raise PermissionError("denied")

    race = ProverRace(["a", "b"], launch, poll_interval=0.001)
    assert race.race(_obligation(), time_limit=1, memory_limit=100) is False


def test_inconsistent_assumption_is_logged(caplog) -> None:
    handles = {}
    plan = {"alt-ergo": (ProverAnswer.UNKNOWN, 0.0, "Inconsistent assumption\nunknown")}
    race = ProverRace(["alt-ergo"], _launcher(plan, handles), poll_interval=0.001)
    with caplog.at_level(logging.WARNING, logger="vericuda.core.prover.race"):
        proved = race.race(_obligation(), time_limit=1, memory_limit=100)
    assert not proved
    assert "inconsistent assumption" in caplog.text
    assert "(< i n)" in caplog.text


def test_running_provers_are_cancelled_when_interrupted() -> None:
    handles = {}
    plan = {"slow": (ProverAnswer.VALID, 10.0, "")}
    inner = _launcher(plan, handles)

    class _Interrupting(_TimedHandle):
        def poll(self):
            raise KeyboardInterrupt

    def launch(name, obligation, time_limit, memory_limit):
        if name == "boom":
            return _Interrupting(name, ProverAnswer.UNKNOWN, 0.0)
        return inner(name, obligation, time_limit, memory_limit)

    race = ProverRace(["slow", "boom"], launch, poll_interval=0.001)
    with pytest.raises(KeyboardInterrupt):
        race.race(_obligation(), time_limit=1, memory_limit=100)
    assert handles["slow"].cancelled
