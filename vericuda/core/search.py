from __future__ import annotations

from typing import Callable, List

from .models import Obligation
from .task_tree import (
    SUCCESS,
    ObligationTree,
    TreeAnd,
    TreeDeferred,
    TreeLeaf,
    TreeOr,
    tree_and,
    tree_or,
)

Predicate = Callable[[Obligation], bool]


def attempt(predicate: Predicate, tree: ObligationTree) -> ObligationTree:
    """Run ``predicate`` on the leaves of ``tree`` and return what is left.

    Every conjunct is tried even after a failure so that all unproved
    obligations stay visible. Disjuncts are tried in order and the first
    success stops the walk: later alternatives are the expensive ones.
    """
    if isinstance(tree, TreeLeaf):
        return SUCCESS if predicate(tree.obligation) else tree
    if isinstance(tree, TreeDeferred):
        return attempt(predicate, tree.force())
    if isinstance(tree, TreeAnd):
        remaining = [attempt(predicate, child) for child in tree.children]
        return tree_and([child for child in remaining if child != SUCCESS])
    if isinstance(tree, TreeOr):
        failed: List[ObligationTree] = []
        for child in tree.children:
            result = attempt(predicate, child)
            if result == SUCCESS:
                return SUCCESS
            failed.append(result)
        return tree_or(failed)
    return tree
