"""
Course paths: the root → course chains shown on a course page.

One-level trainings yield ``[lu, course]``; two-level trainings yield
``[block, lu, course]`` with the block found by a single ancestor lookup.
Semester-based trainings add a second variant prefixed with the
course's semester when it has one. A course linked under several LUs
yields a variant set per link; nothing is deduplicated.
"""

import logging
from typing import Dict, List

from training_architecture.errors import TrainingNotFoundError
from training_architecture.models import Granularity, PathStep, PathVariant

logger = logging.getLogger(__name__)


class PathResolver:
    def __init__(self, store, semester_label: str = "Semester ") -> None:
        self.store = store
        self.semester_label = semester_label

    def build_path(self, training_id: int, course_id: int) -> List[PathVariant]:
        """Return every path variant leading to *course_id*.

        Raises:
            TrainingNotFoundError: *training_id* is unknown.
        """
        training = self.store.get_training(training_id)
        if training is None:
            raise TrainingNotFoundError(training_id)
        two_level = training.granularity is Granularity.TWO_LEVEL

        course = self.store.get_course_metadata([course_id]).get(course_id)
        course_name = course.shortname if course else ""
        semester = self.store.get_course_semester(training_id, course_id)

        records = self.store.get_parent_links(training_id, course_id, True)

        lu_ids: List[int] = []
        blocks: Dict[int, int] = {}
        for rec in records:
            lu_ids.append(rec.parent_lu_id)
            if two_level:
                parents = self.store.get_parent_links(
                    training_id, rec.parent_lu_id, False
                )
                if parents:
                    blocks[rec.parent_lu_id] = parents[0].parent_lu_id
                    lu_ids.append(parents[0].parent_lu_id)

        # LU and block names in one lookup
        names = {
            i: lu.shortname for i, lu in self.store.get_lu_metadata(lu_ids).items()
        }

        with_semester = training.is_semester and bool(semester)
        paths: List[PathVariant] = []
        for rec in records:
            steps: List[PathStep] = []
            if two_level:
                block_id = blocks.get(rec.parent_lu_id)
                steps.append(PathStep(kind="block", name=names.get(block_id, "")))
            steps.append(PathStep(kind="lu", name=names.get(rec.parent_lu_id, "")))
            steps.append(PathStep(kind="course", name=course_name))

            paths.append(PathVariant(kind="plain", steps=steps))
            if with_semester:
                label = PathStep(kind="semester", name=f"{self.semester_label}{semester}")
                paths.append(PathVariant(kind="semester", steps=[label, *steps]))

        logger.debug(
            "Training %d, course %d: %d path variant(s).",
            training_id, course_id, len(paths),
        )
        return paths
