"""AND/OR trees of proof obligations and their reduction algebra.

``TreeAnd`` needs every child proved, ``TreeOr`` needs one. ``SUCCESS`` is
the unit of ``TreeAnd`` and absorbs ``TreeOr``; ``FAIL`` is the unit of
``TreeOr`` and absorbs ``TreeAnd``. No phase currently produces ``FAIL``
since there is no refutation procedure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, List, Sequence, Tuple, Union

from .models import Obligation


@dataclass(frozen=True)
class TreeLeaf:
    obligation: Obligation


class TreeDeferred:
    """Subtree computed on first ``force()`` and cached afterwards.

    Compared by identity; reduction never forces it.
    """

    def __init__(self, thunk: Callable[[], "ObligationTree"]) -> None:
        self._thunk: Callable[[], ObligationTree] | None = thunk
        self._value: ObligationTree | None = None

    @property
    def forced(self) -> bool:
        return self._thunk is None

    def force(self) -> "ObligationTree":
        if self._thunk is not None:
            self._value = self._thunk()
            self._thunk = None
        return self._value

    def __repr__(self) -> str:
        return "TreeDeferred(<forced>)" if self.forced else "TreeDeferred(<lazy>)"


@dataclass(frozen=True)
class TreeAnd:
    children: Tuple["ObligationTree", ...]


@dataclass(frozen=True)
class TreeOr:
    children: Tuple["ObligationTree", ...]


@dataclass(frozen=True)
class TreeSuccess:
    def __repr__(self) -> str:
        return "SUCCESS"


@dataclass(frozen=True)
class TreeFail:
    def __repr__(self) -> str:
        return "FAIL"


SUCCESS = TreeSuccess()
FAIL = TreeFail()

ObligationTree = Union[TreeLeaf, TreeDeferred, TreeAnd, TreeOr, TreeSuccess, TreeFail]


def leaf(obligation: Obligation) -> TreeLeaf:
    return TreeLeaf(obligation)


def tree_and(children: Sequence[ObligationTree]) -> ObligationTree:
    children = tuple(children)
    if not children:
        return SUCCESS
    if len(children) == 1:
        return children[0]
    return TreeAnd(children)


def tree_or(children: Sequence[ObligationTree]) -> ObligationTree:
    children = tuple(children)
    if not children:
        return FAIL
    if len(children) == 1:
        return children[0]
    return TreeOr(children)


def _unique(children: List[ObligationTree]) -> List[ObligationTree]:
    # dict keeps first-seen order
    return list(dict.fromkeys(children))


def reduce_tree(tree: ObligationTree) -> ObligationTree:
    if isinstance(tree, TreeAnd):
        reduced = [reduce_tree(child) for child in tree.children]
        if FAIL in reduced:
            return FAIL
        return tree_and(_unique([child for child in reduced if child != SUCCESS]))
    if isinstance(tree, TreeOr):
        reduced = [reduce_tree(child) for child in tree.children]
        if SUCCESS in reduced:
            return SUCCESS
        return tree_or(_unique([child for child in reduced if child != FAIL]))
    return tree


def count_unsolved(tree: ObligationTree) -> int:
    """Number of open goals; a disjunction counts as a single goal."""
    if isinstance(tree, (TreeSuccess, TreeFail)):
        return 0
    if isinstance(tree, TreeAnd):
        return sum(count_unsolved(child) for child in tree.children)
    return 1


def iter_leaves(tree: ObligationTree) -> Iterator[Obligation]:
    if isinstance(tree, TreeLeaf):
        yield tree.obligation
    elif isinstance(tree, (TreeAnd, TreeOr)):
        for child in tree.children:
            yield from iter_leaves(child)


def render_structure(tree: ObligationTree) -> str:
    if isinstance(tree, TreeSuccess):
        return "<proved>"
    if isinstance(tree, TreeFail):
        return "<failed>"
    if isinstance(tree, TreeDeferred):
        return "<lazy>"
    if isinstance(tree, TreeLeaf):
        return f"#{tree.obligation.short_id}"
    op = "And" if isinstance(tree, TreeAnd) else "Or"
    return f"({op} " + " ".join(render_structure(child) for child in tree.children) + ")"


def tree_to_dict(tree: ObligationTree) -> dict:
    if isinstance(tree, TreeLeaf):
        return {"kind": "leaf", "obligation": tree.obligation.short_id}
    if isinstance(tree, (TreeAnd, TreeOr)):
        return {
            "kind": "and" if isinstance(tree, TreeAnd) else "or",
            "children": [tree_to_dict(child) for child in tree.children],
        }
    if isinstance(tree, TreeDeferred):
        return {"kind": "deferred"}
    return {"kind": "success" if isinstance(tree, TreeSuccess) else "fail"}
