from __future__ import annotations
from collections import deque
from typing import Dict, Generic, Hashable, List, Mapping, Tuple, TypeVar

from orderflow.core.states import INITIAL_STATE, TRANSITIONS

S = TypeVar("S", bound=Hashable)
E = TypeVar("E", bound=Hashable)


class PathFinder(Generic[S, E]):
    """
    Breadth-first search over a transition table shaped {(state, event): state}.

    path_to(target) returns the shortest event sequence leading from the
    initial state to `target`. Ties between equally short paths go to the
    rule enumerated first in the table. The table is treated as immutable,
    so all shortest paths are computed once on construction.

    Usage:
      finder = PathFinder(TRANSITIONS, INITIAL_STATE)
      events, ok = finder.path_to(OrderState.IN_PREPARATION)
      # events == [OrderEvent.PAY, OrderEvent.START_PREPARATION]
    """

    def __init__(self, table: Mapping[Tuple[S, E], S], initial: S):
        self.table = table
        self.initial = initial
        self._paths: Dict[S, List[E]] = self._search()

    def _search(self) -> Dict[S, List[E]]:
        # adjacency keeps table enumeration order
        edges: Dict[S, List[Tuple[E, S]]] = {}
        for (source, event), target in self.table.items():
            edges.setdefault(source, []).append((event, target))

        paths: Dict[S, List[E]] = {self.initial: []}
        queue = deque([self.initial])
        while queue:
            current = queue.popleft()
            for event, target in edges.get(current, []):
                if target in paths:
                    continue
                paths[target] = paths[current] + [event]
                queue.append(target)
        return paths

    def path_to(self, target: S) -> Tuple[List[E], bool]:
        path = self._paths.get(target)
        if path is None:
            return [], False
        return list(path), True

    def reachable(self) -> List[S]:
        return list(self._paths)


# shared, read-only finder for the order lifecycle table
order_path_finder: PathFinder = PathFinder(TRANSITIONS, INITIAL_STATE)
