from vericuda.core.models import Obligation, VerificationSummary, Verdict
from vericuda.core.verdict import compute_verdict


def _unsolved(count: int) -> list:
    return [Obligation(goal=f"(< i {k})", name=f"k#{k}") for k in range(count)]


def test_verdict_verified_when_nothing_remains() -> None:
    decision = compute_verdict(VerificationSummary(unsolved=[], unsolved_count=0))
    assert decision.verdict == Verdict.VERIFIED
    assert decision.reason == "Verified!"


def test_verdict_unverified_reports_single_task() -> None:
    decision = compute_verdict(VerificationSummary(unsolved=_unsolved(1), unsolved_count=1))
    assert decision.verdict == Verdict.UNVERIFIED
    assert decision.reason == "1 unsolved task."


def test_verdict_unverified_counts_disjunction_once() -> None:
    # an unsolved disjunction of two leaves still counts as a single task
    decision = compute_verdict(VerificationSummary(unsolved=_unsolved(3), unsolved_count=2))
    assert decision.verdict == Verdict.UNVERIFIED
    assert decision.reason == "2 unsolved tasks."


def test_verdict_error_on_verification_error() -> None:
    summary = VerificationSummary(
        unsolved=[],
        unsolved_count=0,
        verification_error=True,
        error_message="no provers configured",
    )
    decision = compute_verdict(summary)
    assert decision.verdict == Verdict.ERROR
    assert decision.reason == "no provers configured"
    assert not summary.fully_verified
