"""
Dice formula parsing.

Grammar (case-insensitive, surrounding whitespace ignored):

    formula   := count? "d" sides modifier?
    count     := positive-integer        (default 1)
    sides     := positive-integer
    modifier  := ("+" | "-") positive-integer

Only a single modifier term is recognized: "1d6+1d4" is not a formula.
Upper bounds and allowed dice types are a caller policy (see rules.py);
the parser only enforces count >= 1 and sides >= 2.
"""
import re
from dataclasses import dataclass, field

from shared.constants import (
    MIN_DICE_COUNT, MIN_DICE_SIDES, ADVANTAGE_DICE_COUNT, ADVANTAGE_DICE_TYPE
)

from .errors import FormatError, RangeError


FORMULA_PATTERN = re.compile(r"^([0-9]*)d([0-9]+)(?:([+-])([0-9]+))?$")


def _signed(modifier: int) -> str:
    """Render a modifier with its sign, or nothing when it is zero."""
    if modifier > 0:
        return f"+{modifier}"
    if modifier < 0:
        return str(modifier)
    return ""


@dataclass(frozen=True)
class DiceFormula:
    """A parsed dice expression such as 3d6-2."""
    count: int
    dice_type: int
    modifier: int = 0
    formula: str = field(default="", compare=False)

    def __post_init__(self):
        for name in ("count", "dice_type", "modifier"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise RangeError(f"{name} must be an integer, got {value!r}")
        if self.count < MIN_DICE_COUNT:
            raise RangeError(f"Must roll at least {MIN_DICE_COUNT} die, got {self.count}")
        if self.dice_type < MIN_DICE_SIDES:
            raise RangeError(f"Die must have at least {MIN_DICE_SIDES} sides, got {self.dice_type}")
        # Always store the canonical rendering, whatever the caller passed
        object.__setattr__(self, "formula", self.canonical())

    def canonical(self) -> str:
        return f"{self.count}d{self.dice_type}{_signed(self.modifier)}"

    @property
    def is_single_d20(self) -> bool:
        return self.count == ADVANTAGE_DICE_COUNT and self.dice_type == ADVANTAGE_DICE_TYPE

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "diceType": self.dice_type,
            "modifier": self.modifier,
            "formula": self.formula,
        }

    def __str__(self) -> str:
        return self.formula


def parse_formula(text: str) -> DiceFormula:
    """
    Parse a dice formula.

    Args:
        text: Formula as typed by a user, e.g. "1d20+5", "D20", " 3d6-2 "

    Returns:
        DiceFormula with its canonical rendering

    Raises:
        FormatError: If the text does not match the grammar
        RangeError: If the count is below 1 or the die has fewer than 2 sides
    """
    if not isinstance(text, str):
        raise FormatError(f"Formula must be a string, got {type(text).__name__}")

    match = FORMULA_PATTERN.match(text.strip().lower())
    if not match:
        raise FormatError(f"Invalid formula {text!r}. Use NdX+Y (e.g. 1d20+5)")

    count_text, sides_text, sign, modifier_text = match.groups()
    count = int(count_text) if count_text else 1
    dice_type = int(sides_text)
    modifier = int(modifier_text) if modifier_text else 0
    if sign == "-":
        modifier = -modifier

    return DiceFormula(count=count, dice_type=dice_type, modifier=modifier)


def format_formula(formula: DiceFormula) -> str:
    """Canonical text of a formula: "{count}d{sides}" plus a signed modifier."""
    return formula.canonical()
