"""
Semester view of a training.

Courses are bucketed by their ``TrainingLinks.semester``; inside each
bucket they are regrouped under their LU (and, for two-level trainings,
the LU's block) as ``LevelGroup``s, ranked by the ``OrderResolver`` and
converted to ``TreeNode``s. Semester and hierarchy are independent: a
course keeps the same LU/block in every view.
"""

import logging
from typing import Dict, List, Optional, Tuple

from training_architecture.config import BlockConfig
from training_architecture.models import (
    DisplayContext,
    Granularity,
    LevelGroup,
    SemesterView,
    Training,
    TreeNode,
)
from training_architecture.order_resolver import OrderResolver

logger = logging.getLogger(__name__)


def _child_group(parent: LevelGroup, lu_id: int) -> LevelGroup:
    for child in parent.children:
        if child.lu_id == lu_id:
            return child
    child = LevelGroup(lu_id=lu_id)
    parent.children.append(child)
    return child


def _add_course(group: LevelGroup, course_id: int) -> None:
    if course_id not in group.courses:
        group.courses.append(course_id)


def _collect_ids(groups: List[LevelGroup], out: List[int]) -> List[int]:
    for g in groups:
        out.append(g.lu_id)
        _collect_ids(g.children, out)
    return out


class SemesterResolver:
    """Builds ``SemesterView``s for semester-based trainings."""

    def __init__(
        self,
        store,
        presenter,
        order_resolver: Optional[OrderResolver] = None,
        config: Optional[BlockConfig] = None,
    ) -> None:
        self.store = store
        self.presenter = presenter
        self.order = order_resolver or OrderResolver(store)
        self.config = config or BlockConfig()

    def courses_by_semester(self, training_id: int) -> List[Tuple[int, List[int]]]:
        """Return ``(semester, course_ids)`` pairs, semesters ascending.

        Courses without a semester, or not linked under an LU of the
        training, are left out.
        """
        buckets: Dict[int, List[int]] = {}
        for tl in self.store.get_training_links(training_id):
            if not tl.semester:
                continue
            if not self.store.course_in_training(training_id, tl.course_id):
                logger.debug(
                    "Course %d has semester %d but no LU in training %d.",
                    tl.course_id, tl.semester, training_id,
                )
                continue
            buckets.setdefault(tl.semester, []).append(tl.course_id)
        return sorted(buckets.items())

    def level_groups(
        self, training: Training, course_ids: List[int]
    ) -> List[LevelGroup]:
        """Group *course_ids* under their LU, and block for two levels.

        An LU without a block in a two-level training is kept as a
        top-level group holding its courses directly.
        """
        two_level = training.granularity is Granularity.TWO_LEVEL
        tops: Dict[int, LevelGroup] = {}

        for course_id in course_ids:
            for link in self.store.get_parent_links(training.id, course_id, True):
                lu_id = link.parent_lu_id
                blocks = []
                if two_level:
                    blocks = [
                        p.parent_lu_id
                        for p in self.store.get_parent_links(training.id, lu_id, False)
                    ]
                if not blocks:
                    group = tops.setdefault(lu_id, LevelGroup(lu_id=lu_id))
                    _add_course(group, course_id)
                    continue
                for block_id in blocks:
                    block = tops.setdefault(block_id, LevelGroup(lu_id=block_id))
                    _add_course(_child_group(block, lu_id), course_id)

        return list(tops.values())

    def semester_views(
        self,
        training: Training,
        context: DisplayContext = "dashboard",
        current_course_id: Optional[int] = None,
    ) -> List[SemesterView]:
        views = []
        for semester, course_ids in self.courses_by_semester(training.id):
            groups = self.level_groups(training, course_ids)
            ordered = self.order.order_siblings(
                training.id, training.granularity, groups
            )
            views.append(SemesterView(
                semester=semester,
                label=self.config.semester_name(semester),
                levels=self.to_nodes(training, ordered, context, current_course_id),
            ))
        logger.debug(
            "Training %d: %d semester view(s) built.", training.id, len(views)
        )
        return views

    def to_nodes(
        self,
        training: Training,
        groups: List[LevelGroup],
        context: DisplayContext = "dashboard",
        current_course_id: Optional[int] = None,
    ) -> List[TreeNode]:
        metas = self.store.get_lu_metadata(_collect_ids(groups, []))
        return self._to_nodes(
            training, groups, context, current_course_id, metas, depth=0
        )

    def _to_nodes(self, training, groups, context, current_course_id, metas, depth):
        in_course = context == "course"
        indent = (depth + 1) * self.config.indent_step
        nodes = []
        for g in groups:
            meta = metas.get(g.lu_id)
            course_list = ""
            if g.courses:
                courses = self.store.get_course_metadata(g.courses)
                course_list = self.presenter.render_course_list(
                    [courses[c] for c in g.courses if c in courses],
                    context, current_course_id,
                )
            children = self._to_nodes(
                training, g.children, context, current_course_id, metas, depth + 1
            )
            nodes.append(TreeNode(
                id=g.lu_id,
                name=meta.display_name(context) if meta else "",
                description=(meta.description or None) if meta and not in_course else None,
                depth=depth,
                indent=indent,
                indent_courses=indent + self.config.indent_step,
                courses=list(g.courses),
                course_list=course_list,
                children=children,
                no_header=bool(g.courses) and not children,
                open=in_course and current_course_id in g.courses,
                is_first_level=(
                    depth == 0 and training.granularity is Granularity.TWO_LEVEL
                ),
                is_course_context=in_course,
            ))
        return nodes
