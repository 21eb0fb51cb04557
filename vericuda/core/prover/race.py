from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Final, Iterable, List, Sequence

from ..errors import ConfigurationError
from ..models import Obligation, ProverAnswer, ProverVerdict
from .base import Launcher, ProverHandle

_LOGGER: Final = logging.getLogger(__name__)

INCONSISTENT_ASSUMPTION_RE: Final = re.compile(r"^Inconsistent assumption", re.MULTILINE)

NO_PROVERS_MESSAGE: Final = (
    "No prover configured. Pass a comma-separated list of provers with "
    "--provers or the VERICUDA_PROVERS environment variable, "
    "example VERICUDA_PROVERS=alt-ergo"
)


@dataclass
class RaceOutcome:
    proved: bool
    verdicts: List[ProverVerdict] = field(default_factory=list)
    winner: str | None = None
    elapsed: float = 0.0


class ProverRace:
    """Run every configured prover on one obligation, first valid answer wins."""

    def __init__(
        self,
        provers: Sequence[str],
        launcher: Launcher,
        poll_interval: float = 0.05,
    ) -> None:
        self.provers = tuple(provers)
        self.launcher = launcher
        self.poll_interval = poll_interval
        self.launches = 0

    def race(self, obligation: Obligation, time_limit: float, memory_limit: int) -> bool:
        return self.run(obligation, time_limit, memory_limit).proved

    def run(self, obligation: Obligation, time_limit: float, memory_limit: int) -> RaceOutcome:
        if not self.provers:
            raise ConfigurationError(NO_PROVERS_MESSAGE)

        _LOGGER.info("Calling provers on #%s...", obligation.short_id)
        started = time.monotonic()
        verdicts: List[ProverVerdict] = []
        running: List[ProverHandle] = []
        try:
            for name in self.provers:
                try:
                    running.append(self.launcher(name, obligation, time_limit, memory_limit))
                    self.launches += 1
                except OSError as exc:
                    failed = ProverVerdict(prover=name, answer=ProverAnswer.FAILURE, output=str(exc))
                    verdicts.append(self._record(obligation, failed))

            while running:
                still_running: List[ProverHandle] = []
                for index, handle in enumerate(running):
                    verdict = handle.poll()
                    if verdict is None:
                        still_running.append(handle)
                        continue
                    verdicts.append(self._record(obligation, verdict))
                    if verdict.valid:
                        losers = still_running + running[index + 1:]
                        running = []
                        verdicts.extend(self._cancel(obligation, losers))
                        return RaceOutcome(
                            proved=True,
                            verdicts=verdicts,
                            winner=verdict.prover,
                            elapsed=time.monotonic() - started,
                        )
                running = still_running
                if running:
                    time.sleep(self.poll_interval)
        finally:
            if running:
                self._cancel(obligation, running)

        return RaceOutcome(proved=False, verdicts=verdicts, elapsed=time.monotonic() - started)

    def _cancel(self, obligation: Obligation, handles: Iterable[ProverHandle]) -> List[ProverVerdict]:
        return [self._record(obligation, handle.cancel()) for handle in handles]

    def _record(self, obligation: Obligation, verdict: ProverVerdict) -> ProverVerdict:
        _LOGGER.info(
            "%s: %s (%.2fs) on #%s",
            verdict.prover,
            verdict.answer.value,
            verdict.elapsed,
            obligation.short_id,
        )
        if INCONSISTENT_ASSUMPTION_RE.search(verdict.output):
            _LOGGER.warning(
                "Task with inconsistent assumption reported by %s:\n%s",
                verdict.prover,
                obligation.render("full"),
            )
        return verdict
