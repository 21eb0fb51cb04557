from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from . import sexpr
from .errors import BundleFormatError, TargetNotFoundError
from .models import Obligation


@dataclass
class ObligationBundle:
    """Verification conditions produced by the VC generator for one program.

    Layout::

        {"program": "vectorAdd.cu",
         "kernels": {"vectorAdd": {"declarations": [...], "premises": [...],
                                   "obligations": [{"name": ..., "goal": ...,
                                                    "premises": [...]}]}}}
    """

    program: str
    kernels: Dict[str, Dict[str, Any]]
    path: str = ""

    def kernel_names(self) -> List[str]:
        return sorted(self.kernels)


@dataclass
class KernelObligations:
    kernel: str
    obligations: List[Obligation] = field(default_factory=list)
    error: str = ""

    def canonical_hash(self) -> str:
        payload = sorted(item.digest() for item in self.obligations)
        raw = json.dumps(payload, separators=(",", ":"))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def load_bundle(path: Path) -> ObligationBundle:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise BundleFormatError(f"{path}: cannot read bundle: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BundleFormatError(f"{path}: invalid JSON: {exc}") from exc
    return parse_bundle(data, path=str(path))


def parse_bundle(data: Any, path: str = "") -> ObligationBundle:
    if not isinstance(data, dict) or not isinstance(data.get("kernels"), dict):
        raise BundleFormatError(f"{path or '<bundle>'}: expected an object with a 'kernels' mapping")
    for name, kernel in data["kernels"].items():
        if not isinstance(kernel, dict) or not isinstance(kernel.get("obligations"), list):
            raise BundleFormatError(f"{path or '<bundle>'}: kernel '{name}' has no 'obligations' list")
    return ObligationBundle(
        program=str(data.get("program") or Path(path).stem or "<program>"),
        kernels=data["kernels"],
        path=path,
    )


def generate_obligations(bundle: ObligationBundle, target: str) -> List[Obligation]:
    kernel = bundle.kernels.get(target)
    if kernel is None:
        raise TargetNotFoundError(target, bundle.kernel_names())

    declarations = tuple(_strings(kernel.get("declarations", []), f"{target}.declarations"))
    for declaration in declarations:
        _check_commands(declaration, f"{target}.declarations")
    shared = tuple(_strings(kernel.get("premises", []), f"{target}.premises"))
    obligations: List[Obligation] = []
    for index, item in enumerate(kernel["obligations"], start=1):
        if isinstance(item, str):
            item = {"goal": item}
        if not isinstance(item, dict) or not isinstance(item.get("goal"), str):
            raise BundleFormatError(f"{target}: obligation #{index} has no 'goal' string")
        premises = shared + tuple(_strings(item.get("premises", []), f"{target}#{index}.premises"))
        for term in (item["goal"], *premises):
            _check_term(term, f"{target}#{index}")
        obligations.append(
            Obligation(
                goal=item["goal"],
                premises=premises,
                declarations=declarations,
                name=str(item.get("name") or f"{target}#{index}"),
                origin=f"{bundle.program}:{target}",
            )
        )
    return obligations


def _strings(values: Any, where: str) -> List[str]:
    if not isinstance(values, list) or not all(isinstance(item, str) for item in values):
        raise BundleFormatError(f"{where}: expected a list of strings")
    return list(values)


def _check_term(term: str, where: str) -> None:
    try:
        sexpr.parse(term)
    except sexpr.SExprError as exc:
        raise BundleFormatError(f"{where}: {exc}") from exc


def _check_commands(text: str, where: str) -> None:
    try:
        sexpr.parse_many(text)
    except sexpr.SExprError as exc:
        raise BundleFormatError(f"{where}: {exc}") from exc
