"""
Dice engine configuration loaded from environment variables.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

from shared.constants import (
    STANDARD_DICE_TYPES, MAX_DICE_COUNT, MAX_MODIFIER, DEFAULT_HISTORY_SIZE
)

load_dotenv()


def _parse_dice_types(raw: str) -> tuple[int, ...] | None:
    """Parse a comma-separated dice type list; "any" disables the check."""
    if raw.strip().lower() == "any":
        return None
    return tuple(int(part) for part in raw.split(",") if part.strip())


def _parse_seed(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Config:
    """Dice engine configuration."""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Randomness (unset means seeded from OS entropy)
    DICE_SEED: int | None = _parse_seed(os.getenv("DICE_SEED"))

    # Roll policy
    DICE_MAX_COUNT: int = int(os.getenv("DICE_MAX_COUNT", str(MAX_DICE_COUNT)))
    DICE_ALLOWED_TYPES: tuple[int, ...] | None = _parse_dice_types(
        os.getenv("DICE_ALLOWED_TYPES", ",".join(str(t) for t in STANDARD_DICE_TYPES))
    )
    DICE_MAX_MODIFIER: int = int(os.getenv("DICE_MAX_MODIFIER", str(MAX_MODIFIER)))

    # History
    DICE_HISTORY_SIZE: int = int(os.getenv("DICE_HISTORY_SIZE", str(DEFAULT_HISTORY_SIZE)))

    # Favorites
    FAVORITES_DB_PATH: Path = Path(os.getenv("FAVORITES_DB_PATH", "./data/favorites.db"))


config = Config()
settings = config
