"""
Block content orchestration.

``build_architecture`` resolves every training of the user's cohorts into
an ``ArchitectureView``: courses outside the architecture, course paths,
semester views and the full LU tree. Each training is resolved in its
own error boundary so one broken training does not blank the others.
``render_block`` hands the view to a presenter and degrades to empty
content when the data source itself fails.
"""

import logging
import sqlite3
from typing import Dict, List, Optional, Sequence

from training_architecture.config import BlockConfig
from training_architecture.errors import TrainingArchitectureError
from training_architecture.hierarchy import HierarchyResolver
from training_architecture.membership import courses_in_architecture
from training_architecture.models import (
    ArchitectureView,
    Cohort,
    DisplayContext,
    Training,
    TrainingError,
    TrainingView,
)
from training_architecture.order_resolver import OrderResolver
from training_architecture.path_resolver import PathResolver
from training_architecture.semester import SemesterResolver

logger = logging.getLogger(__name__)

_BOUNDARY_ERRORS = (TrainingArchitectureError, sqlite3.Error)


class _Resolvers:
    """The resolvers of one request, sharing one store and presenter."""

    def __init__(self, store, presenter, config: BlockConfig) -> None:
        order = OrderResolver(store)
        self.hierarchy = HierarchyResolver(
            store, presenter, order, indent_step=config.indent_step
        )
        self.semesters = SemesterResolver(store, presenter, order, config)
        self.paths = PathResolver(store, semester_label=config.semester_label)


# =========================================================================
# Per-training view
# =========================================================================


def _build_training_view(
    store,
    resolvers: _Resolvers,
    training: Training,
    cohort: Cohort,
    in_architecture: List[int],
    has_architecture: bool,
    context: DisplayContext,
    current_course_id: Optional[int],
) -> TrainingView:
    tv = TrainingView(
        training_id=training.id,
        cohort_id=cohort.id,
        cohort_name=cohort.name,
        title=training.display_name(context),
        description=training.description if context != "course" else None,
        is_semester=training.is_semester,
        has_architecture=has_architecture,
    )

    if (
        context == "course"
        and current_course_id is not None
        and current_course_id in in_architecture
        and store.course_in_training(training.id, current_course_id)
    ):
        tv.paths = resolvers.paths.build_path(training.id, current_course_id)

    if not has_architecture:
        logger.info("Training %d has no courses in its architecture.", training.id)
        return tv

    if training.is_semester:
        tv.semesters = resolvers.semesters.semester_views(
            training, context, current_course_id
        )
    tv.levels = resolvers.hierarchy.resolve_training(
        training, context, current_course_id
    )
    return tv


# =========================================================================
# Block
# =========================================================================


def build_architecture(
    store,
    presenter,
    cohort_ids: Sequence[int],
    context: DisplayContext = "dashboard",
    current_course_id: Optional[int] = None,
    user_course_ids: Optional[Sequence[int]] = None,
    config: Optional[BlockConfig] = None,
) -> ArchitectureView:
    """Resolve the trainings of *cohort_ids* for one request.

    Args:
        store: A Link Store (``SqliteLinkStore`` or compatible).
        presenter: Builds the course-list markup embedded in tree nodes.
        cohort_ids: The user's cohorts, in display order.
        context: ``"dashboard"`` or ``"course"``.
        current_course_id: The course page being viewed, if any.
        user_course_ids: The user's courses; when given and empty, the
                         courses outside the architecture are not listed.
        config: Display settings (defaults to ``presenter.config``).
    """
    config = config or getattr(presenter, "config", None) or BlockConfig()
    resolvers = _Resolvers(store, presenter, config)
    view = ArchitectureView(context=context, current_course_id=current_course_id)

    pairs = store.get_cohort_trainings(cohort_ids)
    trainings = store.get_trainings([t for _, t in pairs])
    cohorts = store.get_cohorts(cohort_ids)
    training_ids = list(trainings)

    not_in_architecture = store.get_courses_not_in_architecture(training_ids)
    with_architecture = store.trainings_with_architecture(training_ids)

    # --- Membership, one adjacency cache per training ---
    in_architecture: Dict[int, List[int]] = {}
    failed: Dict[int, str] = {}
    for training_id, training in trainings.items():
        try:
            in_architecture[training_id] = courses_in_architecture(store, training)
        except _BOUNDARY_ERRORS as exc:
            logger.exception("Membership failed for training %d.", training_id)
            failed[training_id] = str(exc)
    view.courses_in_architecture = [
        c for tid in training_ids for c in in_architecture.get(tid, [])
    ]

    # --- Courses outside the architecture ---
    if not_in_architecture and (user_course_ids is None or len(user_course_ids) > 0):
        metas = store.get_course_metadata(not_in_architecture)
        view.courses_not_in_architecture = [
            metas[c] for c in not_in_architecture if c in metas
        ]
    if context == "course" and current_course_id in not_in_architecture:
        course = store.get_course_metadata([current_course_id]).get(current_course_id)
        view.outside_course_name = course.shortname if course else ""

    # --- Trainings, grouped by cohort in the caller's order ---
    by_cohort: Dict[int, List[int]] = {}
    for cohort_id, training_id in pairs:
        by_cohort.setdefault(cohort_id, []).append(training_id)

    for cohort_id in dict.fromkeys(cohort_ids):
        cohort = cohorts.get(cohort_id, Cohort(id=cohort_id))
        for training_id in by_cohort.get(cohort_id, []):
            training = trainings.get(training_id)
            if training is None:
                logger.warning(
                    "Cohort %d references unknown training %d.", cohort_id, training_id
                )
                continue
            if training_id in failed:
                view.errors.append(TrainingError(
                    training_id=training_id, cohort_id=cohort_id,
                    error=failed[training_id],
                ))
                continue
            try:
                view.trainings.append(_build_training_view(
                    store, resolvers, training, cohort,
                    in_architecture.get(training_id, []),
                    training_id in with_architecture,
                    context, current_course_id,
                ))
            except _BOUNDARY_ERRORS as exc:
                logger.exception(
                    "Training %d (cohort %d) failed to resolve.", training_id, cohort_id
                )
                view.errors.append(TrainingError(
                    training_id=training_id, cohort_id=cohort_id, error=str(exc),
                ))

    logger.info(
        "Architecture built: trainings=%d, errors=%d, outside=%d",
        len(view.trainings), len(view.errors),
        len(view.courses_not_in_architecture),
    )
    return view


def render_block(
    store,
    presenter,
    cohort_ids: Sequence[int],
    context: DisplayContext = "dashboard",
    current_course_id: Optional[int] = None,
    user_course_ids: Optional[Sequence[int]] = None,
) -> str:
    """Render the block content; a data-source failure yields ``""``."""
    try:
        view = build_architecture(
            store, presenter, cohort_ids, context,
            current_course_id=current_course_id,
            user_course_ids=user_course_ids,
        )
    except sqlite3.Error:
        logger.exception("Data source failure, rendering an empty block.")
        return ""
    return presenter.render_view(view)
