from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

from ..errors import ConfigurationError
from ..models import ProverAnswer

PLACEHOLDER_RE = re.compile(r"\{(file|timelimit_ms|timelimit|memlimit)\}")


@dataclass(frozen=True)
class ProverDriver:
    """How to call one prover on an SMT-LIB file and read its answer."""

    name: str
    command: Tuple[str, ...]
    valid: str = r"^unsat\b"
    invalid: str = r"^sat\b"
    unknown: str = r"^unknown\b"
    timeout: str = r"^timeout\b"
    suffix: str = ".smt2"

    def build_command(self, path: Path, time_limit: float, memory_limit: int) -> List[str]:
        seconds = max(1, int(round(time_limit)))
        values = {
            "file": str(path),
            "timelimit": str(seconds),
            "timelimit_ms": str(int(time_limit * 1000)),
            "memlimit": str(memory_limit),
        }
        # other braces (shell or awk snippets) are passed through untouched
        return [PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], part) for part in self.command]

    def classify(self, output: str, returncode: int | None) -> ProverAnswer:
        if re.search(self.valid, output, re.MULTILINE):
            return ProverAnswer.VALID
        if re.search(self.invalid, output, re.MULTILINE):
            return ProverAnswer.INVALID
        if re.search(self.timeout, output, re.MULTILINE):
            return ProverAnswer.TIMEOUT
        if re.search(self.unknown, output, re.MULTILINE):
            return ProverAnswer.UNKNOWN
        if returncode not in (0, None):
            return ProverAnswer.FAILURE
        return ProverAnswer.UNKNOWN


BUILTIN_DRIVERS: Dict[str, ProverDriver] = {
    "z3": ProverDriver(
        name="z3",
        command=("z3", "-smt2", "-T:{timelimit}", "-memory:{memlimit}", "{file}"),
    ),
    "cvc5": ProverDriver(
        name="cvc5",
        command=("cvc5", "--lang=smt2", "--tlimit={timelimit_ms}", "{file}"),
        timeout=r"^(timeout|unknown \(TIMEOUT\))",
    ),
    "alt-ergo": ProverDriver(
        name="alt-ergo",
        command=("alt-ergo", "--timelimit={timelimit}", "{file}"),
        timeout=r"^(timeout|; Timeout)",
    ),
    "yices": ProverDriver(
        name="yices",
        command=("yices-smt2", "--timeout={timelimit}", "{file}"),
    ),
}


def parse_driver_spec(spec: str) -> ProverDriver:
    """Parse ``NAME=COMMAND TEMPLATE`` as given on the command line."""
    name, sep, template = spec.partition("=")
    name = name.strip()
    command = tuple(shlex.split(template))
    if not sep or not name or not command:
        raise ConfigurationError(f"Invalid prover driver '{spec}', expected NAME=COMMAND")
    if not any("{file}" in part for part in command):
        raise ConfigurationError(f"Prover driver '{name}' does not reference {{file}}")
    return ProverDriver(name=name, command=command)


def resolve_drivers(
    provers: List[str] | Tuple[str, ...],
    extra: Mapping[str, ProverDriver] | None = None,
) -> Dict[str, ProverDriver]:
    table = dict(BUILTIN_DRIVERS)
    table.update(extra or {})
    missing = [name for name in provers if name not in table]
    if missing:
        raise ConfigurationError(
            f"Unknown prover(s): {', '.join(missing)} (known: {', '.join(sorted(table))})"
        )
    return {name: table[name] for name in provers}
