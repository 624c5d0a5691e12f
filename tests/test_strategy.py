from dataclasses import dataclass

import pytest

from servicemesh.strategy import RandomStrategy, RoundRobinStrategy, Selector, Strategy


@dataclass
class SelectorImpl:
    target_node_id: str


NODES = [SelectorImpl("alpha"), SelectorImpl("beta"), SelectorImpl("gamma"), SelectorImpl("delta")]


def test_random_returns_a_node_from_the_list():
    chosen = RandomStrategy().select(NODES)
    assert chosen in NODES


def test_random_empty_list_returns_none():
    assert RandomStrategy().select([]) is None


def test_random_eventually_picks_several_nodes():
    strategy = RandomStrategy()
    picked = {strategy.select(NODES).target_node_id for _ in range(200)}
    assert len(picked) > 1
    assert picked <= {"alpha", "beta", "gamma", "delta"}


def test_round_robin_cycles_in_order():
    strategy = RoundRobinStrategy()
    picked = [strategy.select(NODES).target_node_id for _ in range(6)]
    assert picked == ["alpha", "beta", "gamma", "delta", "alpha", "beta"]


def test_round_robin_empty_list_returns_none():
    assert RoundRobinStrategy().select([]) is None


def test_round_robin_wraps_when_list_shrinks():
    strategy = RoundRobinStrategy()
    for _ in range(3):
        strategy.select(NODES)
    assert strategy.select(NODES[:2]).target_node_id == "alpha"


def test_selected_node_satisfies_selector_protocol():
    chosen = RoundRobinStrategy().select(NODES)
    assert isinstance(chosen, Selector)
    assert chosen.target_node_id == "alpha"


def test_strategy_is_abstract():
    with pytest.raises(TypeError):
        Strategy()