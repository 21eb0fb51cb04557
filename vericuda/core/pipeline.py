from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Final, List, Sequence, Tuple

from .errors import ConfigurationError
from .models import Obligation, VerificationSummary
from .prover import ProcessLauncher, ProverDriver, ProverRace, resolve_drivers
from .prover.base import Launcher
from .prover.race import NO_PROVERS_MESSAGE
from .search import Predicate, attempt
from .task_tree import (
    SUCCESS,
    ObligationTree,
    count_unsolved,
    iter_leaves,
    leaf,
    reduce_tree,
    render_structure,
    tree_and,
    tree_or,
)
from .transforms import SExprTransformer, Transformer

_LOGGER: Final = logging.getLogger(__name__)

PROVERS_ENV: Final = "VERICUDA_PROVERS"


@dataclass
class PipelineConfig:
    provers: List[str] = field(default_factory=list)
    time_limit: float = 10.0
    quick_time_limit: float = 1.0
    memory_limit: int = 1000
    congruence_depth: int = 10
    transform: bool = True
    prove: bool = True
    poll_interval: float = 0.05
    kill_grace: float = 1.0
    helper_symbol: str = "mk_dim3"
    helper_fields: Tuple[str, ...] = ("x", "y", "z")
    print_task_style: str = "short"
    print_sizes: bool = False
    trace_root: str = ".vericuda-trace"
    drivers: Dict[str, ProverDriver] = field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> "PipelineConfig":
        config = cls(provers=parse_prover_list(os.getenv(PROVERS_ENV, "")))
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provers": list(self.provers),
            "time_limit": self.time_limit,
            "quick_time_limit": self.quick_time_limit,
            "memory_limit": self.memory_limit,
            "congruence_depth": self.congruence_depth,
            "transform": self.transform,
            "prove": self.prove,
            "helper_symbol": self.helper_symbol,
            "drivers": sorted(self.drivers),
        }


def parse_prover_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class PhaseReport:
    name: str
    structure: str
    unsolved: int
    elapsed: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "structure": self.structure,
            "unsolved": self.unsolved,
            "elapsed": round(self.elapsed, 3),
        }


@dataclass
class PipelineResult:
    initial: ObligationTree
    residual: ObligationTree
    phases: List[PhaseReport] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.residual == SUCCESS

    @property
    def unsolved(self) -> List[Obligation]:
        return list(iter_leaves(self.residual))

    def summary(self) -> VerificationSummary:
        return VerificationSummary(
            unsolved=self.unsolved,
            unsolved_count=count_unsolved(self.residual),
        )


def build_tree(
    obligations: Sequence[Obligation],
    transformer: Transformer,
    transform: bool = True,
) -> ObligationTree:
    """Initial tree: a conjunction over obligations, each an Or of simplifications."""
    if not transform:
        return tree_and([leaf(item) for item in obligations])

    def simplify(obligation: Obligation) -> ObligationTree:
        return tree_and(
            [
                tree_or([tree_and([leaf(item) for item in branch]) for branch in transformer.alternatives(part)])
                for part in transformer.prepare(obligation)
            ]
        )

    return reduce_tree(tree_and([simplify(item) for item in obligations]))


class VerificationPipeline:
    """Successive proof phases, each narrowing the residual obligation tree."""

    def __init__(
        self,
        config: PipelineConfig,
        launcher: Launcher | None = None,
        transformer: Transformer | None = None,
    ) -> None:
        if not config.provers:
            raise ConfigurationError(NO_PROVERS_MESSAGE)
        self.config = config
        if launcher is None:
            drivers = resolve_drivers(config.provers, config.drivers)
            launcher = ProcessLauncher(drivers, kill_grace=config.kill_grace)
        self.race = ProverRace(config.provers, launcher, poll_interval=config.poll_interval)
        self.transformer = transformer or SExprTransformer()

    def build_tree(self, obligations: Sequence[Obligation]) -> ObligationTree:
        return build_tree(obligations, self.transformer, self.config.transform)

    def phases(self) -> List[Tuple[str, Predicate]]:
        if not self.config.transform:
            return [("direct", lambda item: self._prove(item, self.config.time_limit))]
        return [
            ("direct", lambda item: self._prove(item, self.config.quick_time_limit)),
            ("eliminate-helper", self._eliminate_helper),
            ("congruence", self._congruence_retry),
            ("eliminate-equality", self._eliminate_equality),
        ]

    def run(
        self,
        tree: ObligationTree,
        on_phase: Callable[[PhaseReport], None] | None = None,
    ) -> PipelineResult:
        result = PipelineResult(initial=tree, residual=tree)
        for name, predicate in self.phases():
            _LOGGER.info("Phase %s: %d unsolved task(s)", name, count_unsolved(result.residual))
            started = time.monotonic()
            result.residual = reduce_tree(attempt(predicate, result.residual))
            report = PhaseReport(
                name=name,
                structure=render_structure(result.residual),
                unsolved=count_unsolved(result.residual),
                elapsed=time.monotonic() - started,
            )
            _LOGGER.debug("After %s: %s", name, report.structure)
            result.phases.append(report)
            if on_phase is not None:
                on_phase(report)
        return result

    def verify(self, obligations: Sequence[Obligation]) -> PipelineResult:
        return self.run(self.build_tree(obligations))

    def _prove(self, obligation: Obligation, time_limit: float) -> bool:
        return self.race.race(obligation, time_limit, self.config.memory_limit)

    def _eliminate_helper(self, obligation: Obligation) -> bool:
        fragments = self.transformer.eliminate_symbol(
            obligation,
            self.config.helper_symbol,
            self.config.helper_fields,
        )
        return all(self._prove(item, self.config.quick_time_limit) for item in fragments)

    def _congruence_retry(self, obligation: Obligation) -> bool:
        """Apply congruence until every fragment is proved or the depth runs out."""
        worklist = [(obligation, self.config.congruence_depth)]
        while worklist:
            current, depth = worklist.pop()
            if depth <= 0:
                return False
            fragments = self.transformer.congruence(current)
            if fragments is None:
                return False
            unproved = [item for item in fragments if not self._prove(item, self.config.time_limit)]
            worklist.extend((item, depth - 1) for item in reversed(unproved))
        return True

    def _eliminate_equality(self, obligation: Obligation) -> bool:
        fragments = self.transformer.weaken_equality(obligation, resimplify=True)
        return all(self._prove(item, self.config.time_limit) for item in fragments)
