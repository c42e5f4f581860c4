"""
Pydantic models for the training architecture.

Store records: trainings, learning units, links, training links, courses,
cohorts.
Resolved structures: tree nodes, level groups, path variants, semester
views and the per-request architecture view handed to a presenter.
"""

from enum import IntEnum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# =========================================================================
# Literals & enums
# =========================================================================

DisplayContext = Literal["dashboard", "course"]
PathKind = Literal["plain", "semester"]
StepKind = Literal["semester", "block", "lu", "course"]


class Granularity(IntEnum):
    """Number of LU levels above the courses of a training."""

    ONE_LEVEL = 1
    TWO_LEVEL = 2

    @classmethod
    def parse(cls, raw: Any) -> "Granularity":
        """Map a stored granularity value to a member.

        Only ``1`` (or ``"1"``) means one level; every other value is
        treated as two or more levels.
        """
        if isinstance(raw, cls):
            return raw
        if str(raw).strip() == "1":
            return cls.ONE_LEVEL
        return cls.TWO_LEVEL


# =========================================================================
# Store records
# =========================================================================


class Training(BaseModel):
    """Mirrors a single row of the ``Trainings`` table."""

    id: int
    fullname: str = ""
    shortname: str = ""
    description: Optional[str] = None
    granularity: Granularity = Granularity.ONE_LEVEL
    is_semester: bool = False

    @field_validator("granularity", mode="before")
    @classmethod
    def _parse_granularity(cls, value: Any) -> Granularity:
        return Granularity.parse(value)

    def display_name(self, context: DisplayContext) -> str:
        return self.shortname if context == "course" else self.fullname


class LearningUnit(BaseModel):
    """Mirrors a single row of the ``LearningUnits`` table."""

    id: int
    fullname: str = ""
    shortname: str = ""
    description: Optional[str] = None

    def display_name(self, context: DisplayContext) -> str:
        return self.shortname if context == "course" else self.fullname


class Link(BaseModel):
    """A directed parent → child edge scoped to one training."""

    training_id: int
    parent_lu_id: int
    child_id: int
    child_is_course: bool


class TrainingLink(BaseModel):
    """Assigns a course to a semester bucket within a training."""

    training_id: int
    course_id: int
    semester: Optional[int] = None


class CourseInfo(BaseModel):
    """Read-only projection of a course."""

    id: int
    shortname: str = ""
    fullname: str = ""
    summary: Optional[str] = None
    image_url: Optional[str] = None


class Cohort(BaseModel):
    """Mirrors a single row of the ``Cohorts`` table."""

    id: int
    name: str = ""


# =========================================================================
# Resolved structures
# =========================================================================


class TreeNode(BaseModel):
    """One resolved LU of a training tree.

    ``no_header`` marks a summary leaf: an LU carrying courses but no
    child LUs, rendered as a collapsible course list.
    """

    id: int
    name: str = ""
    description: Optional[str] = None
    depth: int = 0
    indent: int = 0
    indent_courses: int = 0
    courses: List[int] = Field(default_factory=list)
    course_list: str = ""
    children: List["TreeNode"] = Field(default_factory=list)
    no_header: bool = False
    open: bool = False
    is_first_level: bool = False
    is_course_context: bool = False


class LevelGroup(BaseModel):
    """An LU with the courses and child LUs grouped under it."""

    lu_id: int
    courses: List[int] = Field(default_factory=list)
    children: List["LevelGroup"] = Field(default_factory=list)


class PathStep(BaseModel):
    kind: StepKind
    name: str = ""


class PathVariant(BaseModel):
    """An ordered root → course chain of named steps."""

    kind: PathKind = "plain"
    steps: List[PathStep] = Field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.steps]


class SemesterView(BaseModel):
    semester: int
    label: str = ""
    levels: List[TreeNode] = Field(default_factory=list)


class TrainingError(BaseModel):
    """A training whose resolution failed; the others still render."""

    training_id: int
    cohort_id: Optional[int] = None
    error: str


class TrainingView(BaseModel):
    """Everything resolved for one (cohort, training) pair."""

    training_id: int
    cohort_id: int
    cohort_name: str = ""
    title: str = ""
    description: Optional[str] = None
    is_semester: bool = False
    has_architecture: bool = False
    paths: List[PathVariant] = Field(default_factory=list)
    semesters: List[SemesterView] = Field(default_factory=list)
    levels: List[TreeNode] = Field(default_factory=list)


class ArchitectureView(BaseModel):
    """The whole block content for one request."""

    context: DisplayContext = "dashboard"
    current_course_id: Optional[int] = None
    courses_not_in_architecture: List[CourseInfo] = Field(default_factory=list)
    outside_course_name: Optional[str] = None
    courses_in_architecture: List[int] = Field(default_factory=list)
    trainings: List[TrainingView] = Field(default_factory=list)
    errors: List[TrainingError] = Field(default_factory=list)


TreeNode.model_rebuild()
LevelGroup.model_rebuild()
