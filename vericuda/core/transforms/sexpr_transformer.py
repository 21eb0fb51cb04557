from __future__ import annotations

from typing import Dict, List, Sequence, Set

from .. import sexpr
from ..models import Obligation
from ..sexpr import SExpr, head, occurs

TRUE = "true"
FALSE = "false"

NON_CONGRUENT_HEADS = {"and", "or", "not", "=>", "forall", "exists", "let", "!"}


def split_goal(goal: SExpr) -> List[SExpr]:
    h = head(goal)
    if h == "and":
        return [part for child in goal[1:] for part in split_goal(child)]
    if h == "=>" and len(goal) == 3:
        return [("=>", goal[1], part) for part in split_goal(goal[2])]
    if h == "forall" and len(goal) == 3:
        return [("forall", goal[1], part) for part in split_goal(goal[2])]
    return [goal]


def _dedupe(items: List[SExpr]) -> List[SExpr]:
    return list(dict.fromkeys(items))


def fold(expr: SExpr) -> SExpr:
    """Fold boolean constants and trivial equalities bottom-up."""
    if isinstance(expr, str):
        return expr
    h = head(expr)
    if h is None:
        return tuple(fold(item) for item in expr)
    if h in ("forall", "exists") and len(expr) == 3:
        body = fold(expr[2])
        if body in (TRUE, FALSE):
            return body
        return (h, expr[1], body)

    args = [fold(item) for item in expr[1:]]
    if h == "not" and len(args) == 1:
        if args[0] == TRUE:
            return FALSE
        if args[0] == FALSE:
            return TRUE
        if head(args[0]) == "not":
            return args[0][1]
    elif h == "and":
        if FALSE in args:
            return FALSE
        args = _dedupe([item for item in args if item != TRUE])
        if not args:
            return TRUE
        if len(args) == 1:
            return args[0]
    elif h == "or":
        if TRUE in args:
            return TRUE
        args = _dedupe([item for item in args if item != FALSE])
        if not args:
            return FALSE
        if len(args) == 1:
            return args[0]
    elif h == "=>" and len(args) == 2:
        hypothesis, conclusion = args
        if hypothesis == FALSE or conclusion == TRUE or hypothesis == conclusion:
            return TRUE
        if hypothesis == TRUE:
            return conclusion
    elif h == "=" and len(args) == 2 and args[0] == args[1]:
        return TRUE
    elif h == "ite" and len(args) == 3:
        if args[0] == TRUE or args[1] == args[2]:
            return args[1]
        if args[0] == FALSE:
            return args[2]
    return (h, *args)


def _congruence(goal: SExpr) -> SExpr | None:
    h = head(goal)
    if h == "=" and len(goal) == 3:
        lhs, rhs = goal[1], goal[2]
        if (
            isinstance(lhs, tuple)
            and isinstance(rhs, tuple)
            and len(lhs) == len(rhs) > 1
            and head(lhs) is not None
            and head(lhs) == head(rhs)
            and head(lhs) not in NON_CONGRUENT_HEADS
        ):
            return ("and", *[("=", a, b) for a, b in zip(lhs[1:], rhs[1:])])
        return None
    if h == "=>" and len(goal) == 3:
        inner = _congruence(goal[2])
        return None if inner is None else ("=>", goal[1], inner)
    if h == "forall" and len(goal) == 3:
        inner = _congruence(goal[2])
        return None if inner is None else ("forall", goal[1], inner)
    if h == "and":
        parts = [_congruence(child) for child in goal[1:]]
        if all(part is None for part in parts):
            return None
        return ("and", *[new if new is not None else old for new, old in zip(parts, goal[1:])])
    return None


def _weaken(expr: SExpr, positive: bool = True) -> SExpr:
    """Replace equalities in positive position by ``false``.

    The result implies ``expr``, so proving it proves the original goal.
    """
    h = head(expr)
    if h == "=" and positive:
        return FALSE
    if h in ("and", "or"):
        return (h, *[_weaken(item, positive) for item in expr[1:]])
    if h == "not" and len(expr) == 2:
        return ("not", _weaken(expr[1], not positive))
    if h == "=>" and len(expr) == 3:
        return ("=>", _weaken(expr[1], not positive), _weaken(expr[2], positive))
    if h == "forall" and len(expr) == 3:
        return ("forall", expr[1], _weaken(expr[2], positive))
    return expr


def _eliminate(expr: SExpr, symbol: str, fields: Sequence[str]) -> SExpr:
    if isinstance(expr, str):
        return expr
    expr = tuple(_eliminate(item, symbol, fields) for item in expr)
    h = head(expr)
    if h in fields and len(expr) == 2 and head(expr[1]) == symbol:
        index = list(fields).index(h) + 1
        if index < len(expr[1]):
            return expr[1][index]
    if h == "=" and len(expr) == 3 and head(expr[1]) == symbol and head(expr[2]) == symbol:
        lhs, rhs = expr[1], expr[2]
        if len(lhs) == len(rhs):
            return ("and", *[("=", a, b) for a, b in zip(lhs[1:], rhs[1:])])
    return expr


class SExprTransformer:
    """Transformer over SMT-LIB terms stored as obligation strings."""

    def prepare(self, obligation: Obligation) -> List[Obligation]:
        return self._finish(obligation, sexpr.parse(obligation.goal))

    def alternatives(self, obligation: Obligation) -> List[List[Obligation]]:
        goal = sexpr.parse(obligation.goal)
        definitions = self._definitions(obligation)
        rewritten = goal
        # each round resolves one level of chained definitions
        for _ in range(len(definitions)):
            step = sexpr.substitute(rewritten, definitions)
            if step == rewritten:
                break
            rewritten = step
        return [
            self._finish(obligation, rewritten),
            self._finish(obligation, goal),
        ]

    def eliminate_symbol(
        self,
        obligation: Obligation,
        symbol: str,
        fields: Sequence[str],
    ) -> List[Obligation]:
        goal = _eliminate(sexpr.parse(obligation.goal), symbol, fields)
        premises = tuple(
            sexpr.dump(fold(_eliminate(sexpr.parse(item), symbol, fields)))
            for item in obligation.premises
        )
        base = Obligation(
            goal=obligation.goal,
            premises=premises,
            declarations=obligation.declarations,
            name=obligation.name,
            origin=obligation.origin,
        )
        return self._finish(base, goal)

    def congruence(self, obligation: Obligation) -> List[Obligation] | None:
        goal = _congruence(sexpr.parse(obligation.goal))
        if goal is None:
            return None
        return self._finish(obligation, goal)

    def weaken_equality(self, obligation: Obligation, resimplify: bool = True) -> List[Obligation]:
        goal = _weaken(sexpr.parse(obligation.goal))
        if not resimplify:
            return [obligation.with_goal(sexpr.dump(goal))]
        return self._finish(obligation, goal)

    def _finish(self, obligation: Obligation, goal: SExpr) -> List[Obligation]:
        parts = _dedupe([fold(part) for part in split_goal(fold(goal))])
        parts = [part for part in parts if part != TRUE]
        if len(parts) == 1:
            return [obligation.with_goal(sexpr.dump(parts[0]))]
        return [
            obligation.with_goal(sexpr.dump(part), suffix=f".{index}")
            for index, part in enumerate(parts, start=1)
        ]

    def _definitions(self, obligation: Obligation) -> Dict[SExpr, SExpr]:
        constants = self._declared_constants(obligation)
        mapping: Dict[SExpr, SExpr] = {}
        for premise in obligation.premises:
            expr = sexpr.parse(premise)
            if head(expr) != "=" or len(expr) != 3:
                continue
            for lhs, rhs in ((expr[1], expr[2]), (expr[2], expr[1])):
                if lhs in constants and lhs not in mapping and not occurs(lhs, rhs):
                    mapping[lhs] = rhs
                    break
        return mapping

    def _declared_constants(self, obligation: Obligation) -> Set[str]:
        constants: Set[str] = set()
        for declaration in obligation.declarations:
            for expr in sexpr.parse_many(declaration):
                kind = head(expr)
                if kind == "declare-const" and len(expr) >= 2:
                    constants.add(expr[1])
                elif kind == "declare-fun" and len(expr) >= 3 and expr[2] == ():
                    constants.add(expr[1])
        return constants
