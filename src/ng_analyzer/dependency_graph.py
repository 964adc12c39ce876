"""
Dependency graph builder for ng-analyzer.

Builds a networkx.DiGraph over every entity of a Project:
- nodes are qualified names "<file_path>#<ClassName>"
- an edge X -> Y means X injects Y, or module X declares/imports/exports Y
- targets outside the project are dropped and recorded as diagnostics

Cycle detection and chain depth are computed once at build time and iterate in
sorted order, so the reported cycles and chains never depend on hash order.

ng_analyzer/src/ng_analyzer/dependency_graph.py
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .errors import GraphInconsistency
from .findings import Diagnostic
from .models import Module, Project

logger = logging.getLogger(__name__)

__all__ = [
    "Cycle",
    "Chain",
    "DependencyGraph",
    "DependencyGraphBuilder",
    "qualified_name",
    "find_cycles",
    "longest_chains",
]

WHITE, GRAY, BLACK = 0, 1, 2


def qualified_name(entity) -> str:
    """Unique node key of an entity."""
    return f"{entity.file_path}#{entity.name}"


def _symbol(node: str) -> str:
    return node.rsplit("#", 1)[-1]


@dataclass(frozen=True)
class Cycle:
    """A closed loop of dependency edges, rotated to start at its smallest node."""

    nodes: Tuple[str, ...]

    @property
    def node_set(self) -> frozenset:
        return frozenset(self.nodes)

    def describe(self) -> str:
        names = [_symbol(n) for n in self.nodes]
        return " -> ".join(names + names[:1])

    def to_dict(self) -> Dict[str, Any]:
        return {"nodes": list(self.nodes)}


@dataclass(frozen=True)
class Chain:
    """Longest simple path from a root node."""

    root: str
    terminal: str
    path: Tuple[str, ...]

    @property
    def length(self) -> int:
        return len(self.path) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "terminal": self.terminal,
            "length": self.length,
            "path": list(self.path),
        }


@dataclass(frozen=True)
class DependencyGraph:
    """The built graph plus everything derived from it."""

    graph: nx.DiGraph = field(compare=False)
    cycles: Tuple[Cycle, ...] = ()
    chains: Tuple[Chain, ...] = ()
    dropped_edges: Tuple[Diagnostic, ...] = ()

    def cycles_containing(self, node: str) -> Tuple[Cycle, ...]:
        return tuple(c for c in self.cycles if node in c.node_set)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": sorted(self.graph.nodes),
            "edges": [
                {"source": s, "target": t, "relations": list(data.get("relations", ()))}
                for s, t, data in sorted(self.graph.edges(data=True), key=lambda e: (e[0], e[1]))
            ],
            "cycles": [c.to_dict() for c in self.cycles],
            "chains": [c.to_dict() for c in self.chains],
        }


class DependencyGraphBuilder:
    """Turns a Project into a DependencyGraph."""

    def build(self, project: Project) -> DependencyGraph:
        graph = nx.DiGraph()
        index: Dict[str, str] = {}

        for kind, entities in (
            ("component", project.components),
            ("service", project.services),
            ("module", project.modules),
            ("directive", project.directives),
            ("pipe", project.pipes),
        ):
            for entity in entities:
                node = qualified_name(entity)
                graph.add_node(node, kind=kind, name=entity.name, file_path=entity.file_path)
                # smallest qualified name wins on a class-name collision
                if entity.name not in index or node < index[entity.name]:
                    index[entity.name] = node

        dropped: List[Diagnostic] = []

        def link(source_entity, target_name: str, relation: str):
            source = qualified_name(source_entity)
            target = index.get(target_name)
            if target is None:
                logger.debug(f"Dropping edge {source} -> {target_name} ({relation})")
                dropped.append(
                    GraphInconsistency.diagnostic(source, target_name, source_entity.file_path)
                )
                return
            if graph.has_edge(source, target):
                relations = graph.edges[source, target]["relations"]
                if relation not in relations:
                    graph.edges[source, target]["relations"] = relations + (relation,)
                return
            graph.add_edge(source, target, relation=relation, relations=(relation,))

        for entity in project.injecting_entities():
            for dependency in entity.dependencies:
                link(entity, dependency, "injects")

        for module in project.modules:
            for relation, names in _module_relations(module):
                for name in names:
                    link(module, name, relation)

        cycles = find_cycles(graph)
        chains = longest_chains(graph)
        logger.info(
            f"Dependency graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges, "
            f"{len(cycles)} cycle(s), {len(dropped)} dropped edge(s)"
        )
        return DependencyGraph(
            graph=graph, cycles=cycles, chains=chains, dropped_edges=tuple(dropped)
        )


def _module_relations(module: Module) -> Iterable[Tuple[str, Tuple[str, ...]]]:
    yield "declares", module.declarations
    yield "imports", module.imports
    yield "exports", module.exports


def _canonical(path: List[str]) -> Tuple[str, ...]:
    start = path.index(min(path))
    return tuple(path[start:] + path[:start])


def find_cycles(graph: nx.DiGraph) -> Tuple[Cycle, ...]:
    """
    Detect cycles with an iterative three-color depth-first traversal.

    A back-edge to an in-progress node closes a cycle. Each cycle is rotated
    to begin at its smallest node and deduplicated by node set.
    """
    color = {node: WHITE for node in graph.nodes}
    seen = set()
    cycles: List[Cycle] = []

    for start in sorted(graph.nodes):
        if color[start] != WHITE:
            continue
        color[start] = GRAY
        path = [start]
        position = {start: 0}
        stack = [iter(sorted(graph.successors(start)))]

        while stack:
            advanced = False
            for successor in stack[-1]:
                state = color[successor]
                if state == GRAY:
                    loop = path[position[successor]:]
                    key = frozenset(loop)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(Cycle(_canonical(loop)))
                elif state == WHITE:
                    color[successor] = GRAY
                    position[successor] = len(path)
                    path.append(successor)
                    stack.append(iter(sorted(graph.successors(successor))))
                    advanced = True
                    break
            if not advanced:
                done = path.pop()
                del position[done]
                color[done] = BLACK
                stack.pop()

    cycles.sort(key=lambda c: c.nodes)
    return tuple(cycles)


def _better(candidate: Tuple[str, ...], best: Optional[Tuple[str, ...]]) -> bool:
    if best is None:
        return True
    if len(candidate) != len(best):
        return len(candidate) > len(best)
    return (candidate[-1], candidate) < (best[-1], best)


def _extend(
    graph: nx.DiGraph,
    path: List[str],
    members: frozenset,
    best: Dict[str, Tuple[str, ...]],
    result: Optional[Tuple[str, ...]],
) -> Tuple[str, ...]:
    """Best of the current path alone and the path continued out of its component."""
    prefix = tuple(path)
    if _better(prefix, result):
        result = prefix
    for successor in sorted(graph.successors(path[-1])):
        if successor in members:
            continue
        candidate = prefix + best[successor]
        if _better(candidate, result):
            result = candidate
    return result


def _longest_within(
    graph: nx.DiGraph, start: str, members: frozenset, best: Dict[str, Tuple[str, ...]]
) -> Tuple[str, ...]:
    """
    Longest simple path from start.

    Only the strongly connected component of start is searched exhaustively;
    once a path leaves it, it continues with the already known best path of
    the node it enters.
    """

    def inside(node: str):
        return iter(sorted(s for s in graph.successors(node) if s in members))

    path = [start]
    on_path = {start}
    result = _extend(graph, path, members, best, None)
    stack = [inside(start)]
    while stack:
        advanced = False
        for successor in stack[-1]:
            if successor in on_path:
                continue
            path.append(successor)
            on_path.add(successor)
            result = _extend(graph, path, members, best, result)
            stack.append(inside(successor))
            advanced = True
            break
        if not advanced:
            stack.pop()
            on_path.discard(path.pop())
    return result


def longest_chains(graph: nx.DiGraph) -> Tuple[Chain, ...]:
    """
    Longest simple path from every root (node without incoming edges).

    Paths are computed per strongly connected component in reverse topological
    order of the condensation, so acyclic parts of the graph are never
    enumerated path by path. Ties on length resolve to the lexicographically
    smallest terminal node, then the smallest path.
    """
    condensed = nx.condensation(graph)
    best: Dict[str, Tuple[str, ...]] = {}
    for component in reversed(list(nx.topological_sort(condensed))):
        members = frozenset(condensed.nodes[component]["members"])
        for node in sorted(members):
            best[node] = _longest_within(graph, node, members, best)

    roots = sorted(node for node in graph.nodes if graph.in_degree(node) == 0)
    return tuple(Chain(root=root, terminal=best[root][-1], path=best[root]) for root in roots)
