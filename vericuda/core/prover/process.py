from __future__ import annotations

import logging
import subprocess
import tempfile
import time
import uuid
from pathlib import Path
from typing import IO, Final, Mapping

from ..errors import ConfigurationError
from ..models import Obligation, ProverAnswer, ProverVerdict
from .drivers import ProverDriver

_LOGGER: Final = logging.getLogger(__name__)


class ProverProcess:
    """One external prover run on one obligation.

    Input and output go through temp files so that polling never blocks on a
    full pipe. Both files are removed once a verdict exists.
    """

    def __init__(
        self,
        driver: ProverDriver,
        obligation: Obligation,
        time_limit: float,
        memory_limit: int,
        kill_grace: float = 1.0,
    ) -> None:
        self.driver = driver
        self.name = driver.name
        self.obligation = obligation
        self.time_limit = time_limit
        self.memory_limit = memory_limit
        self.kill_grace = kill_grace
        self._process: subprocess.Popen | None = None
        self._output: IO[str] | None = None
        self._input_path: Path | None = None
        self._output_path: Path | None = None
        self._started = 0.0
        self._verdict: ProverVerdict | None = None

    def start(self) -> "ProverProcess":
        stem = Path(tempfile.gettempdir()) / f"vericuda_{uuid.uuid4().hex}"
        self._input_path = stem.with_suffix(self.driver.suffix)
        self._output_path = stem.with_suffix(".out")
        try:
            self._input_path.write_text(self.obligation.to_smtlib(), encoding="utf-8")
            self._output = self._output_path.open("w+", encoding="utf-8")
            command = self.driver.build_command(self._input_path, self.time_limit, self.memory_limit)
            _LOGGER.debug("Launching %s: %s", self.name, " ".join(command))
            self._process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=self._output,
                stderr=subprocess.STDOUT,
            )
        except OSError:
            self._cleanup()
            raise
        self._started = time.monotonic()
        return self

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started if self._started else 0.0

    def poll(self) -> ProverVerdict | None:
        if self._verdict is not None:
            return self._verdict
        if self._process is None:
            raise RuntimeError(f"Prover process {self.name} was never started")

        returncode = self._process.poll()
        if returncode is None:
            # the prover's own time limit was not honoured
            if self.elapsed > self.time_limit + self.kill_grace:
                _LOGGER.warning("%s exceeded its time limit of %ss, killing it", self.name, self.time_limit)
                self._stop()
                return self._finish(ProverAnswer.TIMEOUT)
            return None

        output = self._read_output()
        return self._finish(self.driver.classify(output, returncode), output)

    def cancel(self) -> ProverVerdict:
        if self._verdict is not None:
            return self._verdict
        if self._process is None:
            return self._finish(ProverAnswer.KILLED)
        if self._process.poll() is not None:
            return self.poll()
        if not self._stop():
            return self._finish(ProverAnswer.FAILURE)
        return self._finish(ProverAnswer.KILLED)

    def _stop(self) -> bool:
        """SIGTERM, then SIGKILL after the grace period, then stop waiting."""
        process = self._process
        try:
            process.terminate()
        except ProcessLookupError:
            return True
        except OSError as exc:
            _LOGGER.warning("Could not signal %s (pid %s): %s", self.name, process.pid, exc)
            return False
        try:
            process.wait(timeout=self.kill_grace)
            return True
        except subprocess.TimeoutExpired:
            _LOGGER.warning("%s (pid %s) ignored SIGTERM, sending SIGKILL", self.name, process.pid)
        try:
            process.kill()
            process.wait(timeout=self.kill_grace)
        except ProcessLookupError:
            pass
        except subprocess.TimeoutExpired:
            _LOGGER.warning("%s (pid %s) did not exit after SIGKILL, abandoning it", self.name, process.pid)
        return True

    def _read_output(self) -> str:
        if self._output is None:
            return ""
        self._output.flush()
        self._output.seek(0)
        return self._output.read().strip()

    def _finish(self, answer: ProverAnswer, output: str | None = None) -> ProverVerdict:
        if output is None:
            output = self._read_output()
        self._verdict = ProverVerdict(
            prover=self.name,
            answer=answer,
            output=output,
            elapsed=self.elapsed,
        )
        self._cleanup()
        return self._verdict

    def _cleanup(self) -> None:
        if self._output is not None:
            self._output.close()
            self._output = None
        for path in (self._input_path, self._output_path):
            if path is not None and path.exists():
                path.unlink()


class ProcessLauncher:
    """Starts a :class:`ProverProcess` for a configured prover name."""

    def __init__(self, drivers: Mapping[str, ProverDriver], kill_grace: float = 1.0) -> None:
        self.drivers = dict(drivers)
        self.kill_grace = kill_grace

    def __call__(
        self,
        name: str,
        obligation: Obligation,
        time_limit: float,
        memory_limit: int,
    ) -> ProverProcess:
        driver = self.drivers.get(name)
        if driver is None:
            raise ConfigurationError(f"No driver configured for prover '{name}'")
        process = ProverProcess(
            driver=driver,
            obligation=obligation,
            time_limit=time_limit,
            memory_limit=memory_limit,
            kill_grace=self.kill_grace,
        )
        return process.start()
