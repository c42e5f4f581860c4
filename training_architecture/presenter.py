"""
Presentation adapters.

The resolvers hand structured records to a ``Presenter`` and never build
markup themselves. ``TextPresenter`` renders an indented plain-text
outline, used by the CLI and handy in logs.
"""

from typing import List, Optional

from training_architecture.config import BlockConfig
from training_architecture.models import (
    ArchitectureView,
    CourseInfo,
    DisplayContext,
    PathVariant,
    SemesterView,
    TrainingView,
    TreeNode,
)


class Presenter:
    """Interface every presentation adapter implements."""

    def __init__(self, config: Optional[BlockConfig] = None) -> None:
        self.config = config or BlockConfig()

    def render_course_list(
        self,
        courses: List[CourseInfo],
        context: DisplayContext,
        current_course_id: Optional[int] = None,
    ) -> str:
        raise NotImplementedError

    def render_tree(self, node: TreeNode) -> str:
        raise NotImplementedError

    def render_semester(self, semester: SemesterView) -> str:
        raise NotImplementedError

    def render_paths(self, paths: List[PathVariant]) -> str:
        raise NotImplementedError

    def render_view(self, view: ArchitectureView) -> str:
        raise NotImplementedError


def _indent(text: str, level: int) -> str:
    pad = "  " * level
    return "\n".join(pad + line if line else line for line in text.splitlines())


class TextPresenter(Presenter):
    """Plain-text outline renderer."""

    def render_course_list(self, courses, context, current_course_id=None):
        lines = []
        for course in courses:
            if context == "course":
                marker = " (current)" if course.id == current_course_id else ""
                lines.append(f"• {course.shortname}{marker}")
            else:
                image = course.image_url or self.config.no_image_url
                lines.append(
                    f"• {course.shortname} <{self.config.course_url(course.id)}>"
                    f" [{image}]"
                )
        return "\n".join(lines)

    def render_tree(self, node: TreeNode) -> str:
        level = node.indent // self.config.indent_step if self.config.indent_step else node.depth
        head = f"{'▸' if node.no_header else '▾'} {node.name}"
        if node.description:
            head += f": {node.description}"
        parts = [_indent(head, level)]
        if node.course_list:
            parts.append(_indent(node.course_list, level + 1))
        for child in node.children:
            parts.append(self.render_tree(child))
        return "\n".join(parts)

    def render_semester(self, semester: SemesterView) -> str:
        parts = [f"[{semester.label}]"]
        parts.extend(self.render_tree(level) for level in semester.levels)
        return "\n".join(parts)

    def render_paths(self, paths: List[PathVariant]) -> str:
        return "\n".join(" > ".join(p.names) for p in paths)

    def _render_training(self, tv: TrainingView) -> str:
        parts = [f"{self.config.training_label}{tv.title} ({tv.cohort_name})"]
        if tv.description:
            parts.append(tv.description)
        if tv.paths:
            parts.append(self.render_paths(tv.paths))
        if not tv.has_architecture:
            parts.append("No courses in this training yet.")
            return "\n".join(parts)
        for semester in tv.semesters:
            parts.append(self.render_semester(semester))
        parts.extend(self.render_tree(level) for level in tv.levels)
        return "\n".join(parts)

    def render_view(self, view: ArchitectureView) -> str:
        sections = [self.config.title]
        if view.courses_not_in_architecture:
            sections.append(
                "Courses not in the architecture:\n"
                + self.render_course_list(
                    view.courses_not_in_architecture,
                    view.context,
                    view.current_course_id,
                )
            )
        if view.outside_course_name is not None:
            sections.append(view.outside_course_name)
        for tv in view.trainings:
            sections.append(self._render_training(tv))
        for err in view.errors:
            sections.append(f"! training {err.training_id}: {err.error}")
        return "\n\n".join(sections)
