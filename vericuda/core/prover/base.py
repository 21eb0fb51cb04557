from __future__ import annotations

from typing import Callable, Protocol

from ..models import Obligation, ProverVerdict


class ProverHandle(Protocol):
    name: str

    def poll(self) -> ProverVerdict | None:
        """Return the verdict once the prover has finished, ``None`` while running."""
        ...

    def cancel(self) -> ProverVerdict:
        ...


# (prover name, obligation, time limit in seconds, memory limit in MB)
Launcher = Callable[[str, Obligation, float, int], ProverHandle]
