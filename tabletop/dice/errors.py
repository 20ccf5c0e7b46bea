"""
Exceptions raised by the dice engine.

Every error here is user-correctable: it is surfaced to the caller as a
validation message and never retried.
"""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabletop.dice.rules import ValidationResult


class DiceError(ValueError):
    """Base exception for dice engine errors."""


class FormatError(DiceError):
    """Raised when a formula does not match the dice grammar."""


class RangeError(DiceError):
    """Raised when a dice count or side count is out of range."""


class PolicyError(DiceError):
    """Raised when a well-formed formula is refused by the roll policy."""

    def __init__(self, validation: "ValidationResult"):
        super().__init__(validation.message)
        self.validation = validation


class DuplicateFavoriteError(DiceError):
    """Raised when a formula is already saved as a favorite."""
