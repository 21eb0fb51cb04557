from __future__ import annotations

from dataclasses import dataclass

from .models import VerificationSummary, Verdict


@dataclass(frozen=True)
class VerdictDecision:
    verdict: Verdict
    reason: str


def compute_verdict(summary: VerificationSummary) -> VerdictDecision:
    """
    Fail-closed verdict contract:
    - ERROR on configuration or input errors
    - VERIFIED only when the residual tree is empty
    - UNVERIFIED otherwise, with the number of unsolved tasks
    """
    if summary.verification_error:
        return VerdictDecision(
            Verdict.ERROR,
            summary.error_message or "Verification configuration/input error",
        )

    if summary.fully_verified:
        return VerdictDecision(Verdict.VERIFIED, "Verified!")

    count = summary.unsolved_count
    return VerdictDecision(
        Verdict.UNVERIFIED,
        f"{count} unsolved task{'' if count == 1 else 's'}.",
    )
