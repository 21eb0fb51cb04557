from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Sequence, Tuple

from vericuda.core.errors import TargetNotFoundError, VericudaError
from vericuda.core.obligation_source import ObligationBundle, load_bundle
from vericuda.core.pipeline import PipelineConfig, parse_prover_list
from vericuda.core.prover import parse_driver_spec
from vericuda.core.reporter import (
    dump_json,
    render_json_report,
    render_markdown_report,
    render_sarif_report,
)
from vericuda.core.runner import VericudaRunner
from vericuda.utils.file_router import discover_bundle_files

EXIT_VERIFIED = 0
EXIT_UNSOLVED = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vericuda", description="VeriCUDA proof obligation engine")
    parser.add_argument("path", type=str, help="Obligation bundle (.json) or directory of bundles")
    parser.add_argument("--kernel", action="append", default=[], help="Kernel to verify (repeatable, default: all)")
    parser.add_argument("--provers", type=str, default=None, help="Comma-separated provers (default: $VERICUDA_PROVERS)")
    parser.add_argument("--driver", action="append", default=[], metavar="NAME=COMMAND",
                        help="Extra prover driver, e.g. 'myz3=z3 -smt2 {file}'")
    parser.add_argument("--timelimit", type=float, default=10.0)
    parser.add_argument("--memlimit", type=int, default=1000)
    parser.add_argument("--congruence-depth", type=int, default=10)
    parser.add_argument("--no-trans", action="store_true", help="Skip simplification and retry phases")
    parser.add_argument("--no-prove", action="store_true", help="Only generate and print tasks")
    parser.add_argument("--print-task-style", choices=["short", "full", "none"], default="short")
    parser.add_argument("--print-size", action="store_true")
    parser.add_argument("--trace-root", type=str, default=".vericuda-trace")
    parser.add_argument("--output-json", type=str, default=None)
    parser.add_argument("--output-md", type=str, default=None)
    parser.add_argument("--output-sarif", type=str, default=None)
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = _build_config(args)
        targets = _collect_targets(Path(args.path), args.kernel)
        if not targets:
            print(json.dumps({"status": "no-obligation-bundles-found"}, indent=2))
            return EXIT_VERIFIED
        runner = VericudaRunner(config=config, echo=print)
        reports = runner.run_many(targets)
    except VericudaError as exc:
        print(json.dumps({"status": "error", "error": str(exc)}, indent=2))
        return EXIT_FATAL

    json_payload = render_json_report(reports)
    if args.output_json:
        dump_json(args.output_json, json_payload)
    if args.output_md:
        Path(args.output_md).write_text(
            render_markdown_report(reports, style=config.print_task_style),
            encoding="utf-8",
        )
    if args.output_sarif:
        dump_json(args.output_sarif, render_sarif_report(reports))

    print(json.dumps(json_payload["summary"], indent=2))
    if json_payload["summary"]["error"]:
        return EXIT_FATAL
    if not config.prove or json_payload["summary"]["verified"] == len(reports):
        return EXIT_VERIFIED
    return EXIT_UNSOLVED


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_env(
        time_limit=args.timelimit,
        memory_limit=args.memlimit,
        congruence_depth=args.congruence_depth,
        transform=not args.no_trans,
        prove=not args.no_prove,
        print_task_style=args.print_task_style,
        print_sizes=args.print_size,
        trace_root=args.trace_root,
    )
    if args.provers is not None:
        config.provers = parse_prover_list(args.provers)
    for spec in args.driver:
        driver = parse_driver_spec(spec)
        config.drivers[driver.name] = driver
    return config


def _collect_targets(path: Path, kernels: List[str]) -> List[Tuple[ObligationBundle, str]]:
    if not path.is_dir():
        bundle = load_bundle(path)
        return [(bundle, name) for name in kernels or bundle.kernel_names()]

    targets: List[Tuple[ObligationBundle, str]] = []
    for item in discover_bundle_files(path):
        bundle = load_bundle(item)
        names = [name for name in kernels if name in bundle.kernels] if kernels else bundle.kernel_names()
        targets.extend((bundle, name) for name in names)
    found = {name for _, name in targets}
    for name in kernels:
        if name not in found:
            raise TargetNotFoundError(name)
    return targets


if __name__ == "__main__":
    raise SystemExit(main())
