"""Application settings, read from ISSUESYNC_* environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.lock import DEFAULT_LOCK_TIMEOUT


class Settings(BaseSettings):
    """Settings shared by every command.

    Command line options override the environment.
    """

    model_config = SettingsConfigDict(env_prefix="ISSUESYNC_")

    project_root: Path = Field(
        default=Path(),
        description="Directory holding the .issues mirror",
    )

    # None falls back to $EDITOR, $VISUAL, then the first known editor on PATH
    editor: str | None = Field(
        default=None,
        description="Command used by 'new --edit', e.g. 'code --wait'",
    )

    verbose: int = Field(
        default=0,
        ge=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    lock_timeout: float = Field(
        default=DEFAULT_LOCK_TIMEOUT,
        gt=0,
        description="Seconds to wait for another command to release the store lock",
    )
