from vericuda.core.models import Obligation, Verdict
from vericuda.core.pipeline import PhaseReport
from vericuda.core.reporter import (
    KernelReport,
    render_json_report,
    render_markdown_report,
    render_sarif_report,
)

UNSOLVED = Obligation(goal="(< tid n)", premises=("(<= 0 tid)",), name="vectorAdd#1")


def _reports() -> list:
    return [
        KernelReport(
            program="vectorAdd.cu",
            kernel="vectorAdd",
            verdict=Verdict.UNVERIFIED,
            message="1 unsolved task.",
            obligations=[UNSOLVED, Obligation(goal="(<= 0 tid)")],
            unsolved=[UNSOLVED],
            unsolved_count=1,
            initial_structure="(And #a #b)",
            phases=[PhaseReport(name="direct", structure=f"#{UNSOLVED.short_id}", unsolved=1, elapsed=0.2)],
        ),
        KernelReport(
            program="vectorAdd.cu",
            kernel="init",
            verdict=Verdict.VERIFIED,
            message="Verified!",
        ),
    ]


def test_json_report_summary() -> None:
    payload = render_json_report(_reports())
    assert payload["summary"] == {
        "total": 2,
        "verified": 1,
        "unverified": 1,
        "error": 0,
        "unsolved_tasks": 1,
    }
    kernel = payload["kernels"][0]
    assert kernel["verdict"] == "UNVERIFIED"
    assert kernel["obligations"] == 2
    assert kernel["unsolved"][0]["name"] == "vectorAdd#1"
    assert kernel["phases"][0]["name"] == "direct"


def test_markdown_report_lists_unsolved_tasks() -> None:
    text = render_markdown_report(_reports())
    assert "| `vectorAdd.cu` | `vectorAdd` | UNVERIFIED | 1 |" in text
    assert "## vectorAdd.cu:init" in text
    assert UNSOLVED.render("short") in text


def test_sarif_report_has_one_result_per_unsolved_task() -> None:
    sarif = render_sarif_report(_reports())
    results = sarif["runs"][0]["results"]
    assert sarif["version"] == "2.1.0"
    assert len(results) == 1
    assert results[0]["ruleId"] == "vericuda/unsolved"
    assert results[0]["partialFingerprints"]["obligation"] == UNSOLVED.digest()


def test_sarif_report_flags_errors() -> None:
    report = KernelReport(program="p.cu", kernel="k", verdict=Verdict.ERROR, message="boom")
    results = render_sarif_report([report])["runs"][0]["results"]
    assert [item["ruleId"] for item in results] == ["vericuda/error"]
