import heapq
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence

from vault_deployment.exceptions import CycleError, UnknownUnit


class Scheduler:
    """
    Orders deployment units so that each comes after everything it depends on.

    Units with no ordering constraint between them keep their declaration
    order, so the same request always yields the same execution order.
    """

    def __init__(self, graph: Dict[str, Sequence[str]]):
        self.graph = OrderedDict((name, tuple(deps)) for name, deps in graph.items())
        self._position = {name: index for index, name in enumerate(self.graph)}

    @classmethod
    def from_units(cls, units) -> "Scheduler":
        return cls(OrderedDict((unit.name, unit.dependencies) for unit in units))

    def _dependencies(self, name: str) -> Sequence[str]:
        try:
            return self.graph[name]
        except KeyError:
            raise UnknownUnit(f"No unit named '{name}' is declared.")

    def closure(self, requested: Iterable[str], satisfied: Iterable[str] = ()) -> List[str]:
        """
        Returns the requested units plus their transitive dependencies, in
        declaration order. Satisfied units, and anything only reachable
        through them, are left out.
        """
        satisfied = set(satisfied)
        seen = set()
        stack = [name for name in requested if name not in satisfied]
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen.add(name)
            for dependency in self._dependencies(name):
                if dependency not in satisfied and dependency not in seen:
                    stack.append(dependency)
        return sorted(seen, key=self._position.__getitem__)

    def order(self, requested: Iterable[str], satisfied: Iterable[str] = ()) -> List[str]:
        """Topologically sorts the closure of the requested units (Kahn's algorithm)."""
        nodes = self.closure(requested, satisfied)
        members = set(nodes)

        indegree = {name: 0 for name in nodes}
        dependents = {name: list() for name in nodes}
        for name in nodes:
            for dependency in self.graph[name]:
                if dependency in members:
                    indegree[name] += 1
                    dependents[dependency].append(name)

        ready = [(self._position[name], name) for name in nodes if indegree[name] == 0]
        heapq.heapify(ready)

        ordered = list()
        while ready:
            _, name = heapq.heappop(ready)
            ordered.append(name)
            for dependent in dependents[name]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(ready, (self._position[dependent], dependent))

        if len(ordered) != len(nodes):
            remaining = [name for name in nodes if indegree[name] > 0]
            raise CycleError(self._find_cycle(remaining))

        return ordered

    def _find_cycle(self, remaining: List[str]) -> List[str]:
        """Walks the unsortable remainder until a unit repeats."""
        members = set(remaining)
        path = [remaining[0]]
        while True:
            dependency = next(d for d in self.graph[path[-1]] if d in members)
            if dependency in path:
                return path[path.index(dependency) :] + [dependency]
            path.append(dependency)
