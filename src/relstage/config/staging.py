"""Defaults for staging and replaying relation assignments."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import parse_env_flag
from .errors import ConfigurationError

DEFAULT_TEXT_SEPARATOR: Final[str] = ","
DEFAULT_TEXT_JOINER: Final[str] = ", "


@dataclass(frozen=True, slots=True)
class StagingConfig:
    """Process-wide defaults; relation registries and callers may override ``strict``."""

    strict: bool = False
    text_separator: str = DEFAULT_TEXT_SEPARATOR
    text_joiner: str = DEFAULT_TEXT_JOINER

    def __post_init__(self) -> None:
        if not self.text_separator:
            raise ConfigurationError("Text separator must not be empty")


def get_staging_config() -> StagingConfig:
    separator = os.getenv("RELSTAGE_TEXT_SEPARATOR") or DEFAULT_TEXT_SEPARATOR
    joiner = os.getenv("RELSTAGE_TEXT_JOINER") or DEFAULT_TEXT_JOINER
    return StagingConfig(
        strict=parse_env_flag("RELSTAGE_STRICT", default=False),
        text_separator=separator,
        text_joiner=joiner,
    )
