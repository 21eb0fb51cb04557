"""Minimal SMT-LIB s-expression reader and printer.

Terms are plain Python values: an atom is a ``str`` and an application is a
``tuple`` of terms, so structural equality and hashing come for free.
"""

from __future__ import annotations

import re
from typing import List, Tuple, Union

SExpr = Union[str, Tuple["SExpr", ...]]

_TOKEN_RE = re.compile(r';[^\n]*|\(|\)|\|[^|]*\||"(?:[^"]|"")*"|[^\s()|";]+')


BINDERS = ("forall", "exists", "let")


class SExprError(ValueError):
    pass


def tokenize(text: str) -> List[str]:
    return [token for token in _TOKEN_RE.findall(text) if not token.startswith(";")]


def parse_many(text: str) -> List[SExpr]:
    tokens = tokenize(text)
    stack: List[List[SExpr]] = [[]]
    for token in tokens:
        if token == "(":
            stack.append([])
        elif token == ")":
            if len(stack) == 1:
                raise SExprError(f"Unbalanced ')' in {text!r}")
            items = stack.pop()
            stack[-1].append(tuple(items))
        else:
            stack[-1].append(token)
    if len(stack) != 1:
        raise SExprError(f"Unbalanced '(' in {text!r}")
    return stack[0]


def parse(text: str) -> SExpr:
    exprs = parse_many(text)
    if len(exprs) != 1:
        raise SExprError(f"Expected exactly one term, got {len(exprs)} in {text!r}")
    return exprs[0]


def dump(expr: SExpr) -> str:
    if isinstance(expr, str):
        return expr
    return "(" + " ".join(dump(item) for item in expr) + ")"


def size(expr: SExpr) -> int:
    if isinstance(expr, str):
        return 1
    return 1 + sum(size(item) for item in expr)


def head(expr: SExpr) -> str | None:
    if isinstance(expr, tuple) and expr and isinstance(expr[0], str):
        return expr[0]
    return None


def occurs(atom: str, expr: SExpr) -> bool:
    if isinstance(expr, str):
        return expr == atom
    return any(occurs(atom, item) for item in expr)


def bound_names(bindings: SExpr) -> List[str]:
    """Names introduced by a ``forall``/``exists``/``let`` binding list."""
    if isinstance(bindings, str):
        return []
    return [item[0] for item in bindings if isinstance(item, tuple) and item and isinstance(item[0], str)]


def substitute(expr: SExpr, mapping: dict) -> SExpr:
    """Replace free atoms (or whole sub-terms) found in ``mapping``.

    Under a binder, entries that mention a bound name are dropped, both to
    respect shadowing and to avoid capturing a free name in a replacement.
    """
    if expr in mapping:
        return mapping[expr]
    if isinstance(expr, str):
        return expr
    h = head(expr)
    if h in BINDERS and len(expr) == 3 and isinstance(expr[1], tuple):
        bindings = expr[1]
        if h == "let":
            # let bindings are parallel: their values see the outer scope
            bindings = tuple(
                (item[0], *(substitute(value, mapping) for value in item[1:]))
                if isinstance(item, tuple) and item
                else item
                for item in bindings
            )
        names = bound_names(expr[1])
        inner = {
            key: value
            for key, value in mapping.items()
            if not any(occurs(name, key) or occurs(name, value) for name in names)
        }
        return (h, bindings, substitute(expr[2], inner))
    return tuple(substitute(item, mapping) for item in expr)
