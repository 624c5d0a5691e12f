"""Strategies that pick one endpoint among several candidates."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Protocol, Sequence, TypeVar, runtime_checkable


@runtime_checkable
class Selector(Protocol):
    """Anything that can be selected: it names the node it targets."""

    @property
    def target_node_id(self) -> str: ...


S = TypeVar("S")


class Strategy(ABC):
    """Chooses one of the given selectors, or None when there are none."""

    @abstractmethod
    def select(self, nodes: Sequence[S]) -> S | None:
        """Return the chosen node, or None for an empty sequence."""


class RandomStrategy(Strategy):
    """Picks a node uniformly at random."""

    def select(self, nodes: Sequence[S]) -> S | None:
        if not nodes:
            return None
        return random.choice(nodes)


class RoundRobinStrategy(Strategy):
    """Picks nodes in turn, wrapping around at the end of the sequence."""

    def __init__(self) -> None:
        self._counter = -1

    def select(self, nodes: Sequence[S]) -> S | None:
        if not nodes:
            return None
        self._counter += 1
        if self._counter >= len(nodes):
            self._counter = 0
        return nodes[self._counter]