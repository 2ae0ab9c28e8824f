"""
Asset dependency graph - deterministic ordering and cycle detection.
"""

from collections import deque
from typing import Deque, Dict, Iterator, List, Optional, Set

from .errors import DependencyCycleError


class DependencyGraph:
    """
    Directed graph of asset ids, each node listing the ids it depends on.

    Node order is insertion order; ties in the topological order are broken
    by it, so identical graphs always sort identically.
    """

    def __init__(self):
        self._adjacency: Dict[str, List[str]] = {}

    def add_node(self, name: str, dependencies: Optional[List[str]] = None) -> None:
        """
        Register an asset and the assets it depends on.

        Re-adding a node extends its dependency list. Dependencies not yet
        registered become nodes without dependencies of their own.
        """
        incoming = list(dict.fromkeys(dependencies or []))
        known = self._adjacency.setdefault(name, [])
        known.extend(d for d in incoming if d not in known)

        for dependency in incoming:
            self._adjacency.setdefault(dependency, [])

    def topological_sort(self) -> List[str]:
        """
        Order nodes so that every dependency precedes its dependents.

        Raises:
            DependencyCycleError: If the graph has a cycle
        """
        pending = {name: len(deps) for name, deps in self._adjacency.items()}
        dependents: Dict[str, List[str]] = {name: [] for name in self._adjacency}
        for name, deps in self._adjacency.items():
            for dependency in deps:
                dependents[dependency].append(name)

        ready: Deque[str] = deque(name for name, count in pending.items() if count == 0)
        ordered: List[str] = []

        while ready:
            name = ready.popleft()
            ordered.append(name)
            for dependent in dependents[name]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    ready.append(dependent)

        if len(ordered) != len(self._adjacency):
            leftover = [name for name in self._adjacency if pending[name] > 0]
            raise DependencyCycleError(cycle=self.find_cycle() or leftover)

        return ordered

    def find_cycle(self) -> Optional[List[str]]:
        """
        Find a cycle with an iterative depth-first walk.

        Returns:
            Node names along the cycle, each depending on the next and the
            last on the first; ``None`` if the graph is acyclic
        """
        finished: Set[str] = set()

        for start in self._adjacency:
            if start in finished:
                continue

            path: List[str] = [start]
            position: Dict[str, int] = {start: 0}
            branches: List[Iterator[str]] = [iter(self._adjacency[start])]

            while branches:
                dependency = next(branches[-1], None)

                if dependency is None:
                    done = path.pop()
                    del position[done]
                    finished.add(done)
                    branches.pop()
                elif dependency in position:
                    return path[position[dependency]:]
                elif dependency not in finished:
                    position[dependency] = len(path)
                    path.append(dependency)
                    branches.append(iter(self._adjacency[dependency]))

        return None

    def get_dependencies(self, name: str) -> List[str]:
        return list(self._adjacency.get(name, []))

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(deps) for name, deps in self._adjacency.items()}

    def to_dot(self) -> str:
        """
        Render as Graphviz DOT, edges pointing from dependency to dependent
        (the direction content is delivered in).
        """
        lines = [
            "digraph assets {",
            "  rankdir=TB;",
            '  node [shape=note, fontname="monospace"];',
        ]
        lines.extend(f'  "{name}";' for name in self._adjacency)
        lines.extend(
            f'  "{dependency}" -> "{name}";'
            for name, deps in self._adjacency.items()
            for dependency in deps
        )
        lines.append("}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._adjacency)

    def __contains__(self, name: object) -> bool:
        return name in self._adjacency

    def __repr__(self) -> str:
        return f"<DependencyGraph nodes={len(self._adjacency)}>"
