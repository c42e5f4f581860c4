"""
Hierarchy resolution: rebuild the LU tree of a training from its links.

Every LU resolves to a ``TreeNode`` or to ``None`` when it carries no
course and no resolvable child LU (a branch that is not built yet). An
LU with courses but no child LUs becomes a summary leaf
(``no_header=True``).

Recursion tracks the chain of ancestors; meeting an ancestor again
raises ``CyclicHierarchyError`` instead of recursing forever. Links are
read once per training through an ``AdjacencyCache``.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from training_architecture.dag_validator import check_hierarchy
from training_architecture.errors import CyclicHierarchyError
from training_architecture.membership import AdjacencyCache
from training_architecture.models import (
    DisplayContext,
    LearningUnit,
    Training,
    TreeNode,
)
from training_architecture.order_resolver import OrderResolver

logger = logging.getLogger(__name__)


@dataclass
class _Traversal:
    """Per-call state: scope, display context, links and fetched LU metadata."""

    training_id: int
    context: DisplayContext
    current_course_id: Optional[int]
    adjacency: AdjacencyCache
    lu_meta: Dict[int, LearningUnit] = field(default_factory=dict)


class HierarchyResolver:
    """Builds ``TreeNode`` trees from the links of a Link Store."""

    def __init__(
        self,
        store,
        presenter,
        order_resolver: Optional[OrderResolver] = None,
        indent_step: int = 20,
    ) -> None:
        self.store = store
        self.presenter = presenter
        self.order = order_resolver or OrderResolver(store)
        self.indent_step = indent_step

    # =====================================================================
    # Public API
    # =====================================================================

    def resolve(
        self,
        training_id: int,
        root_lu_id: int,
        context: DisplayContext = "dashboard",
        depth: int = 0,
        current_course_id: Optional[int] = None,
        adjacency: Optional[AdjacencyCache] = None,
    ) -> Optional[TreeNode]:
        """Resolve the subtree rooted at *root_lu_id*.

        Returns ``None`` when the LU has neither courses nor a non-empty
        child LU. Pass *adjacency* to share one link load between roots
        of the same training.

        Raises:
            CyclicHierarchyError: the links below *root_lu_id* loop.
        """
        if adjacency is None:
            adjacency = AdjacencyCache(self.store, training_id)
        state = _Traversal(training_id, context, current_course_id, adjacency)
        self._fetch_meta(state, [root_lu_id])
        return self._resolve(state, root_lu_id, depth, ())

    def resolve_training(
        self,
        training: Training,
        context: DisplayContext = "dashboard",
        current_course_id: Optional[int] = None,
    ) -> List[TreeNode]:
        """Resolve every root of *training*, dropping empty ones.

        Raises:
            CyclicHierarchyError: any links of the training loop, including
                cycles that no root leads to.
        """
        adjacency = AdjacencyCache(self.store, training.id)
        check_hierarchy(training.id, adjacency.links())
        roots = self.store.get_root_lus(training.id, training.granularity)
        if not roots:
            logger.warning("Training %d has no root LU.", training.id)
        nodes = []
        for root in roots:
            node = self.resolve(
                training.id, root, context,
                current_course_id=current_course_id, adjacency=adjacency,
            )
            if node is not None:
                nodes.append(node)
        return nodes

    # =====================================================================
    # Internals
    # =====================================================================

    def _fetch_meta(self, state: _Traversal, lu_ids: Sequence[int]) -> None:
        missing = [i for i in lu_ids if i not in state.lu_meta]
        if missing:
            state.lu_meta.update(self.store.get_lu_metadata(missing))

    def _resolve(
        self,
        state: _Traversal,
        lu_id: int,
        depth: int,
        ancestors: Tuple[int, ...],
    ) -> Optional[TreeNode]:
        if lu_id in ancestors:
            start = ancestors.index(lu_id)
            raise CyclicHierarchyError(
                state.training_id, [*ancestors[start:], lu_id]
            )
        chain = ancestors + (lu_id,)

        links = state.adjacency.children(lu_id)

        # Only a pure LU fan-out is ranked; mixed fan-outs keep store order.
        if links and all(not l.child_is_course for l in links):
            links = self.order.sort_links(state.training_id, links)

        self._fetch_meta(
            state, [l.child_id for l in links if not l.child_is_course]
        )

        courses: List[int] = []
        children: List[TreeNode] = []
        for link in links:
            if link.child_is_course:
                courses.append(link.child_id)
            elif state.adjacency.has_children(link.child_id):
                child = self._resolve(state, link.child_id, depth + 1, chain)
                if child is not None:
                    children.append(child)
            else:
                logger.debug(
                    "LU %d has no links in training %d, skipped.",
                    link.child_id, state.training_id,
                )

        if not children and not courses:
            logger.debug(
                "LU %d pruned from training %d (no courses, no branches).",
                lu_id, state.training_id,
            )
            return None

        meta = state.lu_meta.get(lu_id)
        in_course = state.context == "course"
        indent = depth * self.indent_step

        return TreeNode(
            id=lu_id,
            name=meta.display_name(state.context) if meta else "",
            description=(meta.description or None) if meta and not in_course else None,
            depth=depth,
            indent=indent,
            indent_courses=indent + self.indent_step,
            courses=courses,
            course_list=self._course_list(state, courses),
            children=children,
            no_header=not children,
            open=in_course and state.current_course_id in courses,
            is_course_context=in_course,
        )

    def _course_list(self, state: _Traversal, courses: List[int]) -> str:
        if not courses:
            return ""
        metas = self.store.get_course_metadata(courses)
        known = [metas[c] for c in courses if c in metas]
        if len(known) < len(courses):
            logger.debug(
                "Training %d: %d course(s) without metadata skipped.",
                state.training_id, len(courses) - len(known),
            )
        return self.presenter.render_course_list(
            known, state.context, state.current_course_id
        )
