from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from .models import Obligation, Verdict
from .pipeline import PhaseReport


@dataclass
class KernelReport:
    program: str
    kernel: str
    verdict: Verdict
    message: str
    obligations: List[Obligation] = field(default_factory=list)
    unsolved: List[Obligation] = field(default_factory=list)
    unsolved_count: int = 0
    initial_structure: str = ""
    phases: List[PhaseReport] = field(default_factory=list)

    @property
    def target(self) -> str:
        return f"{self.program}:{self.kernel}"


def render_json_report(kernels: List[KernelReport]) -> Dict[str, Any]:
    payload = {
        "tool": "vericuda",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total": len(kernels),
            "verified": sum(1 for item in kernels if item.verdict == Verdict.VERIFIED),
            "unverified": sum(1 for item in kernels if item.verdict == Verdict.UNVERIFIED),
            "error": sum(1 for item in kernels if item.verdict == Verdict.ERROR),
            "unsolved_tasks": sum(item.unsolved_count for item in kernels),
        },
        "kernels": [
            {
                "program": item.program,
                "kernel": item.kernel,
                "verdict": item.verdict.value,
                "message": item.message,
                "obligations": len(item.obligations),
                "initial_structure": item.initial_structure,
                "phases": [phase.to_dict() for phase in item.phases],
                "unsolved": [o.to_dict() for o in item.unsolved],
            }
            for item in kernels
        ],
    }
    return payload


def render_markdown_report(kernels: List[KernelReport], style: str = "short") -> str:
    lines = [
        "# VeriCUDA Verification Report",
        "",
        "| Program | Kernel | Verdict | Unsolved |",
        "|:---|:---|:---|---:|",
    ]
    for item in kernels:
        lines.append(
            f"| `{item.program}` | `{item.kernel}` | {item.verdict.value} | {item.unsolved_count} |"
        )

    lines.append("")
    for item in kernels:
        lines.append(f"## {item.target}")
        lines.append(f"- Verdict: **{item.verdict.value}**")
        lines.append(f"- Message: {item.message or 'n/a'}")
        lines.append(f"- Obligations generated: {len(item.obligations)}")
        if item.phases:
            lines.append("- Phases:")
            for phase in item.phases:
                lines.append(f"  - `{phase.name}`: {phase.unsolved} unsolved, `{phase.structure}`")
        if item.unsolved:
            lines.append("- Unsolved tasks:")
            lines.append("")
            lines.append("```")
            lines.extend(obligation.render(style) for obligation in item.unsolved)
            lines.append("```")
        lines.append("")
    return "\n".join(lines)


def render_sarif_report(kernels: List[KernelReport]) -> Dict[str, Any]:
    """
    SARIF 2.1.0 output, one result per unsolved obligation.
    """
    rules = [
        {
            "id": "vericuda/unsolved",
            "name": "Unsolved proof obligation",
            "shortDescription": {"text": "Proof obligation not discharged"},
            "fullDescription": {"text": "No configured prover could prove this obligation in any phase."},
            "defaultConfiguration": {"level": "error"},
        },
        {
            "id": "vericuda/error",
            "name": "Verification error",
            "shortDescription": {"text": "Configuration or input error"},
            "fullDescription": {"text": "The kernel could not be verified because the run failed closed."},
            "defaultConfiguration": {"level": "error"},
        },
    ]

    results: List[Dict[str, Any]] = []
    for item in kernels:
        location = [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": item.program},
                    "region": {"startLine": 1},
                },
                "logicalLocations": [{"name": item.kernel, "kind": "function"}],
            }
        ]
        if item.verdict == Verdict.ERROR:
            results.append(
                {
                    "ruleId": "vericuda/error",
                    "level": "error",
                    "message": {"text": item.message or item.verdict.value},
                    "locations": location,
                }
            )
            continue
        for obligation in item.unsolved:
            results.append(
                {
                    "ruleId": "vericuda/unsolved",
                    "level": "error",
                    "message": {"text": f"Unsolved task {obligation.render('short')}"},
                    "locations": location,
                    "partialFingerprints": {"obligation": obligation.digest()},
                    "properties": {"obligation": obligation.name, "kernel": item.kernel},
                }
            )

    return {
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "vericuda",
                        "version": "0.1.0",
                        "rules": rules,
                    }
                },
                "results": results,
            }
        ],
    }


def dump_json(path: str, data: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2)
