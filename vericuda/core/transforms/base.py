from __future__ import annotations

from typing import List, Protocol, Sequence

from ..models import Obligation


class Transformer(Protocol):
    """Rewriting steps applied to obligations between prover attempts.

    Every method returns new obligations and never mutates its input. An
    empty list means the obligation was shown trivially true.
    """

    def prepare(self, obligation: Obligation) -> List[Obligation]:
        ...

    def alternatives(self, obligation: Obligation) -> List[List[Obligation]]:
        """Alternative simplifications, cheapest first."""
        ...

    def eliminate_symbol(
        self,
        obligation: Obligation,
        symbol: str,
        fields: Sequence[str],
    ) -> List[Obligation]:
        ...

    def congruence(self, obligation: Obligation) -> List[Obligation] | None:
        """``None`` when congruence does not apply to the goal."""
        ...

    def weaken_equality(self, obligation: Obligation, resimplify: bool = True) -> List[Obligation]:
        ...
