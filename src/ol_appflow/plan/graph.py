"""Append-only "provision after" relation between plan entities."""

from graphlib import TopologicalSorter

import pulumi

from ol_appflow.lib.errors import CycleError


class DependencyGraph:
    """Directed acyclic set of ordering edges keyed by entity name.

    An edge ``(dependent, dependency)`` means ``dependent`` may only be provisioned
    once ``dependency`` exists. Edges can be added but never removed.
    """

    def __init__(self) -> None:
        # dict keys keep insertion order, which makes every listing deterministic
        self._dependencies: dict[str, dict[str, None]] = {}

    def add_node(self, node: str) -> None:
        self._dependencies.setdefault(node, {})

    def add_edge(self, dependent: str, dependency: str) -> None:
        """Record that ``dependent`` must be provisioned after ``dependency``.

        :raises CycleError: If the edge is a self edge or ``dependency`` already
            (transitively) depends on ``dependent``.
        """
        self.add_node(dependent)
        self.add_node(dependency)
        if dependency in self._dependencies[dependent]:
            return
        if dependent == dependency or self._reaches(dependency, dependent):
            raise CycleError(dependent, dependency)
        pulumi.log.debug(f"ordering {dependent} after {dependency}")
        self._dependencies[dependent][dependency] = None

    def _reaches(self, start: str, target: str) -> bool:
        stack = [start]
        seen: set[str] = set()
        while stack:
            node = stack.pop()
            if node == target:
                return True
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self._dependencies.get(node, {}))
        return False

    def __contains__(self, node: object) -> bool:
        return node in self._dependencies

    def nodes(self) -> list[str]:
        return list(self._dependencies)

    def edges(self) -> list[tuple[str, str]]:
        return [
            (dependent, dependency)
            for dependent, dependencies in self._dependencies.items()
            for dependency in dependencies
        ]

    def dependencies_of(self, node: str) -> list[str]:
        return list(self._dependencies.get(node, {}))

    def dependents_of(self, node: str) -> list[str]:
        return [
            dependent
            for dependent, dependencies in self._dependencies.items()
            if node in dependencies
        ]

    def depends_on(self, dependent: str, dependency: str) -> bool:
        """Whether ``dependent`` is ordered after ``dependency``, directly or not."""
        return dependent != dependency and self._reaches(dependent, dependency)

    def topological_order(self) -> list[str]:
        """All nodes, each listed after everything it depends on."""
        return list(TopologicalSorter(self._dependencies).static_order())
