"""Configuration management for daylit."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DAYLIT_HOME = Path(os.environ.get("DAYLIT_HOME", Path.home() / "daylit"))
CONFIG_FILE = DAYLIT_HOME / "config" / "daylit.conf"
DATA_DIR = DAYLIT_HOME / "data"


@dataclass
class Config:
    """daylit configuration."""

    store_path: str = str(DATA_DIR / "daylit.json")
    day_start: str = "07:00"
    day_end: str = "22:00"
    default_block_min: int = 30
    log_level: str = "WARNING"


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from daylit.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "store_path":
                config.store_path = str(Path(value).expanduser())
            case "day_start":
                config.day_start = value
            case "day_end":
                config.day_end = value
            case "default_block_min":
                try:
                    config.default_block_min = int(value)
                except ValueError:
                    logger.warning(f"Invalid DEFAULT_BLOCK_MIN {value!r}, keeping {config.default_block_min}")
            case "log_level":
                config.log_level = value.upper()
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config
