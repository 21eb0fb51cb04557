"""External prover invocation and racing."""

from .drivers import BUILTIN_DRIVERS, ProverDriver, parse_driver_spec, resolve_drivers
from .process import ProcessLauncher, ProverProcess
from .race import ProverRace, RaceOutcome

__all__ = [
    "BUILTIN_DRIVERS",
    "ProverDriver",
    "ProverProcess",
    "ProcessLauncher",
    "ProverRace",
    "RaceOutcome",
    "parse_driver_spec",
    "resolve_drivers",
]
