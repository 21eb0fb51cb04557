from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Final, List, Sequence, Tuple

from .errors import BundleFormatError
from .models import Obligation, VerificationSummary, Verdict
from .obligation_source import KernelObligations, ObligationBundle, generate_obligations
from .pipeline import PhaseReport, PipelineConfig, VerificationPipeline, build_tree
from .prover.base import Launcher
from .reporter import KernelReport
from .task_tree import count_unsolved, render_structure
from .transforms import SExprTransformer, Transformer
from .verdict import compute_verdict

_LOGGER: Final = logging.getLogger(__name__)

Echo = Callable[[str], None]


def _silent(_: str) -> None:
    return None


class VericudaRunner:
    """Verify kernels from obligation bundles and keep a trace of each run."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        launcher: Launcher | None = None,
        transformer: Transformer | None = None,
        echo: Echo | None = None,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.transformer = transformer or SExprTransformer()
        self.echo = echo or _silent
        # provers are only required when something is going to be proved
        self.pipeline: VerificationPipeline | None = None
        if self.config.prove:
            self.pipeline = VerificationPipeline(self.config, launcher, self.transformer)
        self.last_run_id: str | None = None

    def run_kernel(self, bundle: ObligationBundle, kernel: str) -> KernelReport:
        return self.run_many([(bundle, kernel)])[0]

    def run_many(self, targets: Sequence[Tuple[ObligationBundle, str]]) -> List[KernelReport]:
        # generate everything first so a missing target aborts before any prover runs
        generated = [(bundle, self._generate(bundle, kernel)) for bundle, kernel in targets]

        run_id = self._new_run_id()
        self.last_run_id = run_id
        self._write_manifest(run_id, generated)

        reports = [self._run_kernel(run_id, bundle, item) for bundle, item in generated]
        self._write_summary(run_id, reports)
        return reports

    def _generate(self, bundle: ObligationBundle, kernel: str) -> KernelObligations:
        try:
            return KernelObligations(kernel, generate_obligations(bundle, kernel))
        except BundleFormatError as exc:
            _LOGGER.error("Malformed obligations for %s:%s: %s", bundle.program, kernel, exc)
            return KernelObligations(kernel, error=str(exc))

    def _run_kernel(self, run_id: str, bundle: ObligationBundle, item: KernelObligations) -> KernelReport:
        echo = self.echo
        obligations = item.obligations
        echo(f"== {bundle.program}:{item.kernel}")
        if item.error:
            return self._report_error(run_id, bundle, item)
        echo(f"{len(obligations)} tasks (before simp.)")
        if self.config.print_sizes:
            self._echo_sizes(obligations)

        tree = build_tree(obligations, self.transformer, self.config.transform)
        initial_structure = render_structure(tree)
        echo(f"{count_unsolved(tree)} tasks (after simp.)")
        echo(initial_structure)

        report = KernelReport(
            program=bundle.program,
            kernel=item.kernel,
            verdict=Verdict.UNVERIFIED,
            message="",
            obligations=obligations,
            initial_structure=initial_structure,
        )

        if self.pipeline is None:
            for obligation in obligations:
                self._echo_task("Task", obligation)
            report.unsolved = list(obligations)
            report.unsolved_count = len(obligations)
            report.message = "Proving disabled"
            self._write_result(run_id, report)
            return report

        def on_phase(phase: PhaseReport) -> None:
            echo(f"[{phase.name}] {phase.structure}")

        result = self.pipeline.run(tree, on_phase=on_phase)
        summary: VerificationSummary = result.summary()
        decision = compute_verdict(summary)
        for obligation in summary.unsolved:
            self._echo_task("Unsolved task", obligation)
        echo(decision.reason)
        _LOGGER.info("%s:%s -> %s", bundle.program, item.kernel, decision.verdict.value)

        report.verdict = decision.verdict
        report.message = decision.reason
        report.unsolved = summary.unsolved
        report.unsolved_count = summary.unsolved_count
        report.phases = result.phases
        self._write_result(run_id, report)
        return report

    def _report_error(self, run_id: str, bundle: ObligationBundle, item: KernelObligations) -> KernelReport:
        summary = VerificationSummary(
            unsolved=[],
            unsolved_count=0,
            verification_error=True,
            error_message=item.error,
        )
        decision = compute_verdict(summary)
        self.echo(f"Error: {decision.reason}")
        report = KernelReport(
            program=bundle.program,
            kernel=item.kernel,
            verdict=decision.verdict,
            message=decision.reason,
        )
        self._write_result(run_id, report)
        return report

    def _echo_sizes(self, obligations: Sequence[Obligation]) -> None:
        sizes = [item.size() for item in obligations]
        for index, size in enumerate(sizes, start=1):
            self.echo(f"Task #{index} has size {size}")
        self.echo(f"Total size {sum(sizes)}")

    def _echo_task(self, label: str, obligation: Obligation) -> None:
        style = self.config.print_task_style
        if style == "none":
            return
        self.echo(f"{label}: {obligation.render(style)}")

    def _write_json(self, path: Path, content: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(content, indent=2), encoding="utf-8")

    def _new_run_id(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")

    def _write_manifest(
        self,
        run_id: str,
        generated: Sequence[Tuple[ObligationBundle, KernelObligations]],
    ) -> None:
        manifest = {
            "run_id": run_id,
            "started_at": datetime.now(timezone.utc).isoformat(),
            "targets": [
                {
                    "bundle": bundle.path,
                    "program": bundle.program,
                    "kernel": item.kernel,
                    "obligations": len(item.obligations),
                    "obligation_hash": item.canonical_hash(),
                    "error": item.error or None,
                }
                for bundle, item in generated
            ],
            "config": self.config.to_dict(),
        }
        self._write_json(Path(self.config.trace_root) / run_id / "manifest.json", manifest)

    def _write_result(self, run_id: str, report: KernelReport) -> None:
        path = Path(self.config.trace_root) / run_id / "kernels" / report.program / report.kernel / "result.json"
        self._write_json(
            path,
            {
                "program": report.program,
                "kernel": report.kernel,
                "verdict": report.verdict.value,
                "message": report.message,
                "initial_structure": report.initial_structure,
                "phases": [phase.to_dict() for phase in report.phases],
                "unsolved": [item.to_dict() for item in report.unsolved],
            },
        )

    def _write_summary(self, run_id: str, reports: List[KernelReport]) -> None:
        summary = {
            "run_id": run_id,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "total": len(reports),
                "verified": sum(1 for item in reports if item.verdict == Verdict.VERIFIED),
                "unverified": sum(1 for item in reports if item.verdict == Verdict.UNVERIFIED),
                "error": sum(1 for item in reports if item.verdict == Verdict.ERROR),
            },
            "kernels": [
                {
                    "program": item.program,
                    "kernel": item.kernel,
                    "verdict": item.verdict.value,
                    "message": item.message,
                }
                for item in reports
            ],
        }
        self._write_json(Path(self.config.trace_root) / run_id / "summary.json", summary)
