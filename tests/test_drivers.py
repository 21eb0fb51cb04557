from pathlib import Path

import pytest

from vericuda.core.errors import ConfigurationError
from vericuda.core.models import ProverAnswer
from vericuda.core.prover.drivers import BUILTIN_DRIVERS, parse_driver_spec, resolve_drivers


def test_classify_smtlib_answers() -> None:
    z3 = BUILTIN_DRIVERS["z3"]
    assert z3.classify("unsat", 0) == ProverAnswer.VALID
    assert z3.classify("sat", 0) == ProverAnswer.INVALID
    assert z3.classify("unknown", 0) == ProverAnswer.UNKNOWN
    assert z3.classify("timeout", 0) == ProverAnswer.TIMEOUT
    assert z3.classify("", 1) == ProverAnswer.FAILURE


def test_cvc5_timeout_is_not_reported_as_unknown() -> None:
    assert BUILTIN_DRIVERS["cvc5"].classify("unknown (TIMEOUT)", 0) == ProverAnswer.TIMEOUT


def test_build_command_fills_limits() -> None:
    command = BUILTIN_DRIVERS["cvc5"].build_command(Path("/tmp/goal.smt2"), 2.5, 256)
    assert command == ["cvc5", "--lang=smt2", "--tlimit=2500", "/tmp/goal.smt2"]


def test_parse_driver_spec() -> None:
    driver = parse_driver_spec("myz3=z3 -smt2 -T:{timelimit} {file}")
    assert driver.name == "myz3"
    assert driver.command == ("z3", "-smt2", "-T:{timelimit}", "{file}")


def test_parse_driver_spec_requires_file_placeholder() -> None:
    with pytest.raises(ConfigurationError):
        parse_driver_spec("broken=z3 -smt2")
    with pytest.raises(ConfigurationError):
        parse_driver_spec("no-command")


def test_resolve_drivers_rejects_unknown_names() -> None:
    assert list(resolve_drivers(["alt-ergo", "z3"])) == ["alt-ergo", "z3"]
    with pytest.raises(ConfigurationError):
        resolve_drivers(["z3", "vampire"])


def test_custom_template_keeps_foreign_braces() -> None:
    driver = parse_driver_spec("piped=sh -c 'z3 -T:{timelimit} {file} | awk {print}'")
    command = driver.build_command(Path("/tmp/goal.smt2"), 3, 512)
    assert command == ["sh", "-c", "z3 -T:3 /tmp/goal.smt2 | awk {print}"]
