"""
Workflow Scheduler

Dependency ordering of workflow nodes.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .definition import Workflow
from .exceptions import CycleError

logger = logging.getLogger(__name__)


def topological_order(
    node_ids: Sequence[str], edges: Iterable[Tuple[str, str]]
) -> List[str]:
    """Order nodes so that every edge points forward.

    Kahn's algorithm. Duplicate edges count once and edges touching unknown
    nodes are ignored. Nodes that become ready at the same time keep their
    declaration order, which callers should not rely on.

    Args:
        node_ids: Node identifiers
        edges: (from_node_id, to_node_id) pairs

    Returns:
        Node ids in execution order

    Raises:
        CycleError: If the graph has a cycle (self-loops included)
    """
    nodes = list(dict.fromkeys(node_ids))
    known = set(nodes)

    unique_edges: Set[Tuple[str, str]] = set()
    for source, target in edges:
        if source not in known or target not in known:
            logger.warning(f"Ignoring edge {source} -> {target}: unknown node")
            continue
        unique_edges.add((source, target))

    in_degree: Dict[str, int] = {node: 0 for node in nodes}
    adjacency: Dict[str, List[str]] = defaultdict(list)
    for source, target in unique_edges:
        adjacency[source].append(target)
        in_degree[target] += 1

    position = {node: index for index, node in enumerate(nodes)}
    for successors in adjacency.values():
        successors.sort(key=position.__getitem__)

    queue = deque(node for node in nodes if in_degree[node] == 0)
    order = []

    while queue:
        current = queue.popleft()
        order.append(current)

        for neighbor in adjacency[current]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(order) != len(nodes):
        raise CycleError(known - set(order))

    return order


class GraphScheduler:
    """Computes the execution order of a workflow."""

    def order(self, workflow: Workflow) -> List[str]:
        """
        Order the nodes of a workflow by its connections.

        Raises:
            CycleError: If the connections form a cycle
        """
        order = topological_order(workflow.node_ids, workflow.edges)
        logger.debug(f"Execution order for '{workflow.name}': {order}")
        return order
