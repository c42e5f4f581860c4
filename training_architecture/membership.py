"""
Architecture membership: which courses are reachable from the roots.

``AdjacencyCache`` loads the parent → links map of one training on first
use and is read-only afterwards; build one per training per request
rather than sharing it between requests.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from training_architecture.dag_validator import check_hierarchy
from training_architecture.errors import CyclicHierarchyError
from training_architecture.models import Link, Training

logger = logging.getLogger(__name__)


class AdjacencyCache:
    """Parent LU id → child links of one training, loaded once."""

    def __init__(self, store, training_id: int) -> None:
        self.store = store
        self.training_id = training_id
        self.loads = 0
        self._links: List[Link] = []
        self._adjacency: Optional[Dict[int, List[Link]]] = None

    def _load(self) -> Dict[int, List[Link]]:
        self._links = self.store.get_all_links(self.training_id)
        adjacency: Dict[int, List[Link]] = defaultdict(list)
        for link in self._links:
            adjacency[link.parent_lu_id].append(link)
        self.loads += 1
        logger.debug(
            "Adjacency for training %d: %d parent(s).",
            self.training_id, len(adjacency),
        )
        return dict(adjacency)

    def _ensure(self) -> Dict[int, List[Link]]:
        if self._adjacency is None:
            self._adjacency = self._load()
        return self._adjacency

    def links(self) -> List[Link]:
        """Every link of the training, in Link Store order."""
        self._ensure()
        return self._links

    def children(self, lu_id: int) -> List[Link]:
        return self._ensure().get(lu_id, [])

    def has_children(self, lu_id: int) -> bool:
        return bool(self.children(lu_id))


class MembershipIndex:
    def __init__(self, cache: AdjacencyCache) -> None:
        self.cache = cache

    def courses_reachable_from(self, root_lu_id: int) -> List[int]:
        """Return the course ids below *root_lu_id*, duplicates included.

        A non-course child without links of its own is returned as if it
        were a course.

        Raises:
            CyclicHierarchyError: the links below *root_lu_id* loop.
        """
        courses: List[int] = []
        self._walk(root_lu_id, courses, ())
        return courses

    def _walk(self, lu_id: int, acc: List[int], ancestors: Tuple[int, ...]) -> None:
        if lu_id in ancestors:
            start = ancestors.index(lu_id)
            raise CyclicHierarchyError(
                self.cache.training_id, [*ancestors[start:], lu_id]
            )
        chain = ancestors + (lu_id,)
        for child in self.cache.children(lu_id):
            if not child.child_is_course and self.cache.has_children(child.child_id):
                self._walk(child.child_id, acc, chain)
            else:
                acc.append(child.child_id)


def courses_in_architecture(store, training: Training) -> List[int]:
    """Courses reachable from every root of *training*, in traversal order.

    Raises:
        CyclicHierarchyError: any links of the training loop, including
            cycles that no root leads to.
    """
    cache = AdjacencyCache(store, training.id)
    check_hierarchy(training.id, cache.links())
    index = MembershipIndex(cache)
    courses: List[int] = []
    for root in store.get_root_lus(training.id, training.granularity):
        courses.extend(index.courses_reachable_from(root))
    return courses
