"""
Sibling ordering from explicit ``LuOrder`` ranks.

Missing ranks default to ``0``. Python's ``sorted`` is stable, so
siblings sharing a rank (or having none) keep their incoming order.
"""

import logging
from typing import Dict, List

from training_architecture.models import Granularity, LevelGroup, Link

logger = logging.getLogger(__name__)

DEFAULT_SORT_ORDER = 0


class OrderResolver:
    """Assigns deterministic sibling order for one store."""

    def __init__(self, store) -> None:
        self.store = store

    def _ranks(self, training_id: int, lu_ids: List[int]) -> Dict[int, int]:
        return self.store.get_sort_orders(training_id, lu_ids)

    def sort_links(self, training_id: int, links: List[Link]) -> List[Link]:
        """Stable-sort child links by the rank of their child LU."""
        ranks = self._ranks(training_id, [l.child_id for l in links])
        return sorted(
            links, key=lambda l: ranks.get(l.child_id, DEFAULT_SORT_ORDER)
        )

    def sort_groups(
        self, training_id: int, groups: List[LevelGroup]
    ) -> List[LevelGroup]:
        """Stable-sort sibling groups by the rank of their LU."""
        ranks = self._ranks(training_id, [g.lu_id for g in groups])
        return sorted(
            groups, key=lambda g: ranks.get(g.lu_id, DEFAULT_SORT_ORDER)
        )

    def order_siblings(
        self,
        training_id: int,
        granularity: Granularity,
        groups: List[LevelGroup],
    ) -> List[LevelGroup]:
        """Order a level map.

        One level: the LU groups are sorted by rank.
        Two levels: the LUs inside every block are sorted first, then the
        blocks themselves.
        """
        if Granularity.parse(granularity) is Granularity.ONE_LEVEL:
            return self.sort_groups(training_id, groups)

        inner_sorted = [
            g.model_copy(update={"children": self.sort_groups(training_id, g.children)})
            for g in groups
        ]
        return self.sort_groups(training_id, inner_sorted)
