from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

from . import sexpr


class Verdict(str, Enum):
    VERIFIED = "VERIFIED"
    UNVERIFIED = "UNVERIFIED"
    ERROR = "ERROR"


class ProverAnswer(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"
    TIMEOUT = "timeout"
    KILLED = "killed"
    FAILURE = "failure"


@dataclass(frozen=True)
class Obligation:
    """Prove ``goal`` under ``premises``; compared by content, not by name."""

    goal: str
    premises: Tuple[str, ...] = ()
    declarations: Tuple[str, ...] = ()
    name: str = field(default="", compare=False)
    origin: str = field(default="", compare=False)

    def digest(self) -> str:
        payload = {
            "goal": self.goal,
            "premises": list(self.premises),
            "declarations": list(self.declarations),
        }
        raw = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    @property
    def short_id(self) -> str:
        return self.digest()[:8]

    def size(self) -> int:
        terms = [self.goal, *self.premises]
        return sum(sexpr.size(item) for term in terms for item in sexpr.parse_many(term))

    def with_goal(self, goal: str, suffix: str = "") -> "Obligation":
        return Obligation(
            goal=goal,
            premises=self.premises,
            declarations=self.declarations,
            name=f"{self.name}{suffix}" if suffix else self.name,
            origin=self.origin,
        )

    def to_smtlib(self) -> str:
        lines = [f"; obligation {self.name or self.short_id}", "(set-logic ALL)"]
        lines.extend(self.declarations)
        lines.extend(f"(assert {premise})" for premise in self.premises)
        lines.append(f"(assert (not {self.goal}))")
        lines.append("(check-sat)")
        lines.append("(exit)")
        return "\n".join(lines) + "\n"

    def render(self, style: str = "short") -> str:
        title = f"#{self.short_id}" + (f" {self.name}" if self.name else "")
        if style == "full":
            lines = [title]
            lines.extend(f"  {decl}" for decl in self.declarations)
            lines.extend(f"  premise: {premise}" for premise in self.premises)
            lines.append(f"  goal: {self.goal}")
            return "\n".join(lines)
        return f"{title}: {self.goal}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.short_id,
            "name": self.name,
            "origin": self.origin,
            "goal": self.goal,
            "premises": list(self.premises),
            "declarations": list(self.declarations),
        }


@dataclass(frozen=True)
class ProverVerdict:
    prover: str
    answer: ProverAnswer
    output: str = ""
    elapsed: float = 0.0

    @property
    def valid(self) -> bool:
        return self.answer == ProverAnswer.VALID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prover": self.prover,
            "answer": self.answer.value,
            "elapsed": round(self.elapsed, 3),
            "output": self.output[:400],
        }


@dataclass
class VerificationSummary:
    unsolved: List[Obligation]
    unsolved_count: int
    verification_error: bool = False
    error_message: str = ""

    @property
    def fully_verified(self) -> bool:
        return not self.verification_error and self.unsolved_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unsolved": [item.to_dict() for item in self.unsolved],
            "unsolved_count": self.unsolved_count,
            "verification_error": self.verification_error,
            "error_message": self.error_message,
            "fully_verified": self.fully_verified,
        }
