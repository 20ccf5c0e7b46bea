"""
Dice rolling mechanics.
"""
from dataclasses import dataclass, field, replace
from typing import Iterable

from shared.constants import MIN_DICE_COUNT, MIN_DICE_SIDES

from .errors import RangeError
from .parser import DiceFormula
from .random_source import RandomSource, default_source


def _require_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {value!r}")


def total(results: Iterable[int], modifier: int = 0) -> int:
    """Sum of the rolled values plus the modifier."""
    _require_int("modifier", modifier)
    return sum(results) + modifier


@dataclass(frozen=True)
class RollResult:
    """Result of rolling a pool of dice."""
    results: tuple[int, ...]
    modifier: int = 0
    total: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "total", total(self.results, self.modifier))

    def to_list(self) -> list[int]:
        """Return dice as a list."""
        return list(self.results)


@dataclass(frozen=True)
class AdvantageRoll:
    """
    Two draws of one die, keeping the higher (advantage) or lower one.

    The resolver never applies a modifier: ``modifier`` is 0 unless the
    caller attaches one with ``with_modifier``, and ``total`` is always
    ``kept + modifier``.
    """
    rolled: tuple[int, int]
    advantage: bool
    modifier: int = 0

    def __post_init__(self):
        object.__setattr__(self, "rolled", tuple(self.rolled))

    @property
    def kept(self) -> int:
        return max(self.rolled) if self.advantage else min(self.rolled)

    @property
    def discarded(self) -> int:
        return min(self.rolled) if self.advantage else max(self.rolled)

    @property
    def total(self) -> int:
        return self.kept + self.modifier

    def with_modifier(self, modifier: int) -> "AdvantageRoll":
        _require_int("modifier", modifier)
        return replace(self, modifier=modifier)


class Dice:
    """Handles all dice rolling for a session."""

    def __init__(self, source: RandomSource | None = None):
        """
        Initialize dice roller.

        Args:
            source: Uniform integer source. Defaults to the process-wide
                locked generator; pass a seeded one for reproducible rolls.
        """
        self._source = source or default_source()

    def roll_die(self, sides: int) -> int:
        """Roll one die with the given number of sides."""
        return self._source.next_int(sides) + 1

    def roll(self, count: int, dice_type: int) -> list[int]:
        """
        Roll ``count`` dice of ``dice_type`` sides.

        Returns:
            The individual values in roll order, each in [1, dice_type]

        Raises:
            RangeError: If count < 1 or dice_type < 2
        """
        _require_int("count", count)
        _require_int("dice_type", dice_type)
        if count < MIN_DICE_COUNT:
            raise RangeError(f"Must roll at least {MIN_DICE_COUNT} die, got {count}")
        if dice_type < MIN_DICE_SIDES:
            raise RangeError(f"Die must have at least {MIN_DICE_SIDES} sides, got {dice_type}")
        return [self.roll_die(dice_type) for _ in range(count)]

    def roll_formula(self, formula: DiceFormula) -> RollResult:
        """Roll a parsed formula and fold its modifier into the total."""
        results = self.roll(formula.count, formula.dice_type)
        return RollResult(results=tuple(results), modifier=formula.modifier)

    def roll_with_advantage(self, sides: int) -> AdvantageRoll:
        """Roll two dice and keep the higher. Any ``sides`` >= 2 is accepted."""
        first, second = self.roll(2, sides)
        return AdvantageRoll(rolled=(first, second), advantage=True)

    def roll_with_disadvantage(self, sides: int) -> AdvantageRoll:
        """Roll two dice and keep the lower. Any ``sides`` >= 2 is accepted."""
        first, second = self.roll(2, sides)
        return AdvantageRoll(rolled=(first, second), advantage=False)
