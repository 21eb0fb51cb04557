from vericuda.core.models import Obligation
from vericuda.core.search import attempt
from vericuda.core.task_tree import FAIL, SUCCESS, TreeAnd, TreeDeferred, TreeOr, leaf


def _ob(goal: str) -> Obligation:
    return Obligation(goal=goal)


def _recorder(proved):
    calls = []

    def predicate(obligation: Obligation) -> bool:
        calls.append(obligation.goal)
        return obligation.goal in proved

    return predicate, calls


def test_any_stops_at_first_success() -> None:
    predicate, calls = _recorder({"a"})
    result = attempt(predicate, TreeOr((leaf(_ob("a")), leaf(_ob("b")))))
    assert result == SUCCESS
    assert calls == ["a"]


def test_any_tries_alternatives_in_order() -> None:
    predicate, calls = _recorder({"c"})
    result = attempt(predicate, TreeOr((leaf(_ob("a")), leaf(_ob("b")), leaf(_ob("c")))))
    assert result == SUCCESS
    assert calls == ["a", "b", "c"]


def test_all_tries_every_child_after_a_failure() -> None:
    predicate, calls = _recorder({"b"})
    a = leaf(_ob("a"))
    result = attempt(predicate, TreeAnd((a, leaf(_ob("b")))))
    assert calls == ["a", "b"]
    assert result is a


def test_failed_leaf_is_returned_unchanged() -> None:
    predicate, _ = _recorder(set())
    a = leaf(_ob("a"))
    assert attempt(predicate, a) is a


def test_failed_disjunction_keeps_remaining_alternatives() -> None:
    predicate, _ = _recorder({"b1"})
    tree = TreeOr((leaf(_ob("a")), TreeAnd((leaf(_ob("b1")), leaf(_ob("b2"))))))
    result = attempt(predicate, tree)
    assert result == TreeOr((leaf(_ob("a")), leaf(_ob("b2"))))


def test_deferred_is_forced_during_search() -> None:
    predicate, calls = _recorder({"lazy"})
    tree = TreeAnd((TreeDeferred(lambda: leaf(_ob("lazy"))), leaf(_ob("x"))))
    result = attempt(predicate, tree)
    assert calls == ["lazy", "x"]
    assert result == leaf(_ob("x"))


def test_terminals_pass_through() -> None:
    predicate, calls = _recorder(set())
    assert attempt(predicate, SUCCESS) == SUCCESS
    assert attempt(predicate, FAIL) == FAIL
    assert calls == []
