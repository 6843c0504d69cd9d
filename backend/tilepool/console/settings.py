"""Console configuration via environment variables."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings

from tilepool.logic.enums import PlayerCount


class OutputFormat(str, Enum):
    """How the console renders command results."""

    TEXT = "text"
    JSON = "json"


class ConsoleSettings(BaseSettings):
    model_config = {"env_prefix": "TILEPOOL_"}

    player_count: PlayerCount = PlayerCount.FOUR
    start_interactive: bool = False
    output_format: OutputFormat = OutputFormat.TEXT
    log_dir: str | None = Field(default=None, min_length=1)
