"""
Dice engine package.

The module-level functions roll with the process-wide random source unless
a ``source`` is passed in.
"""
from .errors import (
    DiceError, FormatError, RangeError, PolicyError, DuplicateFavoriteError
)
from .random_source import (
    RandomSource, LockedRandomSource, SystemRandomSource, default_source
)
from .parser import DiceFormula, parse_formula, format_formula
from .dice import Dice, RollResult, AdvantageRoll, total
from .rules import RollPolicy, ValidationResult
from .history import RollHistory, PlayerStats, GameStats
from .session import DiceSession, RollRequest, RollRecord
from .favorites import (
    Favorite, FavoriteStorage, FavoritesManager, MemoryFavoriteStorage
)


def parse(text: str) -> DiceFormula:
    """Parse a formula such as "1d20+5"."""
    return parse_formula(text)


def roll(count: int, dice_type: int, source: RandomSource | None = None) -> list[int]:
    """Roll ``count`` dice of ``dice_type`` sides, in roll order."""
    return Dice(source).roll(count, dice_type)


def roll_with_advantage(sides: int, source: RandomSource | None = None) -> AdvantageRoll:
    """Roll two dice and keep the higher. The modifier is the caller's to add."""
    return Dice(source).roll_with_advantage(sides)


def roll_with_disadvantage(sides: int, source: RandomSource | None = None) -> AdvantageRoll:
    """Roll two dice and keep the lower. The modifier is the caller's to add."""
    return Dice(source).roll_with_disadvantage(sides)


__all__ = [
    "DiceError",
    "FormatError",
    "RangeError",
    "PolicyError",
    "DuplicateFavoriteError",
    "RandomSource",
    "LockedRandomSource",
    "SystemRandomSource",
    "default_source",
    "DiceFormula",
    "parse_formula",
    "format_formula",
    "Dice",
    "RollResult",
    "AdvantageRoll",
    "RollPolicy",
    "ValidationResult",
    "RollHistory",
    "PlayerStats",
    "GameStats",
    "DiceSession",
    "RollRequest",
    "RollRecord",
    "Favorite",
    "FavoriteStorage",
    "FavoritesManager",
    "MemoryFavoriteStorage",
    "parse",
    "roll",
    "total",
    "roll_with_advantage",
    "roll_with_disadvantage",
]
