"""
Graph validation and execution ordering for workflow nodes.

ARCHITECTURAL DECISION: This module is intentionally SYNCHRONOUS.

Ordering is a pure in-memory computation, O(V + E), done once per run before
any node executes. The async WorkflowRunner calls it during planning and then
awaits nodes one at a time in the computed order.

Determinism: zero-in-degree nodes are seeded in declaration order and newly
freed nodes are appended in discovery order (FIFO), so an unchanged graph
always yields the same order.
"""

from collections import deque
from collections.abc import Sequence

from .exceptions import CycleDetectedError, DanglingEdgeError, DuplicateNodeIdError
from .schema import EdgeDefinition, NodeDefinition, WorkflowDefinition


class GraphValidator:
    """Validates a node/edge graph and computes its execution order."""

    def __init__(self, node_ids: Sequence[str], edges: Sequence[EdgeDefinition]):
        """
        Initialize and structurally validate the graph.

        Args:
            node_ids: Node ids in declaration order
            edges: Ordering edges (source runs before target)

        Raises:
            DuplicateNodeIdError: If a node id appears twice
            DanglingEdgeError: If an edge references an unknown node
        """
        seen: set[str] = set()
        for node_id in node_ids:
            if node_id in seen:
                raise DuplicateNodeIdError(node_id)
            seen.add(node_id)

        for edge in edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in seen:
                    raise DanglingEdgeError(edge.source, edge.target, endpoint)

        self.node_ids = list(node_ids)
        self.edges = list(edges)

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition) -> "GraphValidator":
        return cls(definition.node_ids, definition.edges)

    def _adjacency(self) -> tuple[dict[str, int], dict[str, list[str]]]:
        in_degree = {node_id: 0 for node_id in self.node_ids}
        adj_list: dict[str, list[str]] = {node_id: [] for node_id in self.node_ids}
        for edge in self.edges:
            adj_list[edge.source].append(edge.target)
            in_degree[edge.target] += 1
        return in_degree, adj_list

    def topological_sort(self) -> list[str]:
        """
        Kahn's algorithm with a FIFO queue.

        Returns:
            Node ids in execution order

        Raises:
            CycleDetectedError: If some nodes can never reach in-degree zero
        """
        in_degree, adj_list = self._adjacency()

        queue = deque(node_id for node_id in self.node_ids if in_degree[node_id] == 0)
        result: list[str] = []

        while queue:
            current = queue.popleft()
            result.append(current)

            for neighbor in adj_list[current]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        if len(result) < len(self.node_ids):
            ordered = set(result)
            raise CycleDetectedError([n for n in self.node_ids if n not in ordered])

        return result

    def execution_waves(self) -> list[list[str]]:
        """
        Group nodes by topological depth.

        Nodes in the same wave have no dependency on each other. The engine
        still runs them one after another; waves are reported by ``validate``
        as a planning aid.

        Raises:
            CycleDetectedError: If the graph contains a cycle
        """
        order = self.topological_sort()
        parents: dict[str, list[str]] = {node_id: [] for node_id in self.node_ids}
        for edge in self.edges:
            parents[edge.target].append(edge.source)

        depth: dict[str, int] = {}
        for node_id in order:
            depth[node_id] = max((depth[p] + 1 for p in parents[node_id]), default=0)

        waves: list[list[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        # declaration order inside each wave
        for node_id in self.node_ids:
            waves[depth[node_id]].append(node_id)
        return waves


def order_nodes(nodes: Sequence[NodeDefinition], edges: Sequence[EdgeDefinition]) -> list[str]:
    """
    Compute the deterministic execution order for a node/edge set.

    Raises:
        DuplicateNodeIdError, DanglingEdgeError, CycleDetectedError
    """
    return GraphValidator([node.id for node in nodes], edges).topological_sort()


__all__ = ["GraphValidator", "order_nodes"]
