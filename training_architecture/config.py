"""
Block configuration: display labels, indentation and URL templates.

Stored as JSON; missing keys take their defaults, unknown keys are
rejected so a typo in a config file fails loudly.
"""

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from training_architecture.errors import ConfigError

logger = logging.getLogger(__name__)


class BlockConfig(BaseModel):
    """Settings shared by the resolvers and presenters."""

    model_config = ConfigDict(extra="forbid")

    title: str = "Training architecture"
    indent_step: int = Field(default=20, ge=0)
    semester_label: str = "Semester "
    training_label: str = "Training: "
    course_url_template: str = "/course/view.php?id={id}"
    no_image_url: str = "/blocks/training_architecture/images/no_image.jpg"

    def course_url(self, course_id: int) -> str:
        return self.course_url_template.format(id=course_id)

    def semester_name(self, semester: int) -> str:
        return f"{self.semester_label}{semester}"


def load_config(path: Optional[str]) -> BlockConfig:
    """Load a ``BlockConfig`` from *path*, or defaults when *path* is ``None``."""
    if path is None:
        return BlockConfig()
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        config = BlockConfig(**raw)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise ConfigError(f"cannot load config {path}: {exc}") from exc
    logger.info("Config loaded from %s", path)
    return config


def save_config(config: BlockConfig, path: str) -> None:
    """Write *config* to *path* as indented JSON."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(config.model_dump_json(indent=2))
    logger.info("Config saved → %s", path)
