"""
Hierarchy validation: cycle detection and architecture metrics.

Uses ``networkx.DiGraph``. LU and course ids live in separate id spaces,
so graph nodes are ``("lu", id)`` / ``("course", id)`` tuples.
"""

import logging
from typing import Any, Dict, List, Optional

import networkx as nx

from training_architecture.errors import CyclicHierarchyError
from training_architecture.models import Link

logger = logging.getLogger(__name__)


def _node(link: Link, child: bool):
    if not child:
        return ("lu", link.parent_lu_id)
    return ("course" if link.child_is_course else "lu", link.child_id)


def build_graph(links: List[Link]) -> nx.DiGraph:
    """Return the directed parent → child graph of *links*."""
    G = nx.DiGraph()
    for link in links:
        G.add_edge(_node(link, False), _node(link, True))
    return G


# =========================================================================
# Validation
# =========================================================================


def find_cycle_path(links: List[Link]) -> Optional[List[int]]:
    """Return the LU ids of one cycle (first id repeated at the end), or ``None``."""
    G = build_graph(links)
    try:
        cycle = nx.find_cycle(G, orientation="original")
    except nx.NetworkXNoCycle:
        return None
    # cycle is list of (u, v, direction)
    path = [u[1] for u, _, _ in cycle]
    path.append(cycle[-1][1][1])
    logger.debug("Cycle found: %s", path)
    return path


def validate_hierarchy(links: List[Link]) -> bool:
    """Verify that *links* form a DAG (topological sort succeeds)."""
    G = build_graph(links)
    try:
        list(nx.topological_sort(G))
        return True
    except nx.NetworkXUnfeasible:
        return False


def check_hierarchy(training_id: Optional[int], links: List[Link]) -> None:
    """Raise ``CyclicHierarchyError`` when *links* loop anywhere.

    Catches cycles no root leads to, which a walk from the roots never
    reaches.
    """
    if validate_hierarchy(links):
        return
    cycle = find_cycle_path(links) or []
    logger.warning("Training %s has cyclic links: %s", training_id, cycle)
    raise CyclicHierarchyError(training_id, cycle)


# =========================================================================
# Metrics
# =========================================================================


def compute_metrics(links: List[Link]) -> Dict[str, Any]:
    """Compute architecture summary metrics.

    Returns dict with: total_links, total_lus, total_courses, root_count,
    dangling_lus, max_depth, is_dag.
    """
    G = build_graph(links)

    lus = {n for n in G.nodes if n[0] == "lu"}
    courses = {n for n in G.nodes if n[0] == "course"}

    # Roots: LUs nothing points to
    roots = [n for n in lus if G.in_degree(n) == 0]

    # Dangling: LU children with no outgoing link
    dangling = [n for n in lus if G.out_degree(n) == 0]

    is_dag = nx.is_directed_acyclic_graph(G)
    max_depth = nx.dag_longest_path_length(G) if is_dag and G.number_of_edges() else 0

    return {
        "total_links": G.number_of_edges(),
        "total_lus": len(lus),
        "total_courses": len(courses),
        "root_count": len(roots),
        "dangling_lus": len(dangling),
        "max_depth": max_depth,
        "is_dag": is_dag,
    }
