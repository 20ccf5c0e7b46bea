"""
Roll policy applied on top of the formula grammar.

The parser accepts any positive count and any die with two or more sides.
What a table actually allows (how many dice, which dice, how large a
modifier, when advantage applies) is decided here.
"""
import logging
from dataclasses import dataclass
from typing import Iterable

from shared.constants import (
    MAX_DICE_COUNT, MAX_MODIFIER, STANDARD_DICE_TYPES,
    ADVANTAGE_DICE_COUNT, ADVANTAGE_DICE_TYPE
)
from shared.enums import PolicyResult, RollMode
from tabletop.config import settings

from .errors import PolicyError
from .parser import DiceFormula


logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of validating a roll."""
    valid: bool
    result: PolicyResult
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "ValidationResult":
        return cls(valid=True, result=PolicyResult.SUCCESS, message=message)

    @classmethod
    def failure(cls, result: PolicyResult, message: str = "") -> "ValidationResult":
        return cls(valid=False, result=result, message=message)


class RollPolicy:
    """
    Caller-side limits for roll requests.
    """

    def __init__(
        self,
        max_count: int = MAX_DICE_COUNT,
        allowed_dice_types: Iterable[int] | None = STANDARD_DICE_TYPES,
        max_modifier: int = MAX_MODIFIER
    ):
        """
        Initialize roll policy.

        Args:
            max_count: Largest number of dice in one roll
            allowed_dice_types: Permitted side counts, or None for any
            max_modifier: Largest absolute modifier
        """
        self.max_count = max_count
        self.allowed_dice_types = (
            tuple(sorted(set(allowed_dice_types))) if allowed_dice_types is not None else None
        )
        self.max_modifier = max_modifier

    @classmethod
    def from_config(cls) -> "RollPolicy":
        """Build the policy from environment configuration."""
        return cls(
            max_count=settings.DICE_MAX_COUNT,
            allowed_dice_types=settings.DICE_ALLOWED_TYPES,
            max_modifier=settings.DICE_MAX_MODIFIER,
        )

    def validate_formula(self, formula: DiceFormula) -> ValidationResult:
        """Check count, dice type and modifier bounds."""
        if formula.count > self.max_count:
            return ValidationResult.failure(
                PolicyResult.TOO_MANY_DICE,
                f"Invalid number of dice (1-{self.max_count})"
            )

        if self.allowed_dice_types is not None and formula.dice_type not in self.allowed_dice_types:
            allowed = ", ".join(f"d{sides}" for sides in self.allowed_dice_types)
            return ValidationResult.failure(
                PolicyResult.DICE_TYPE_NOT_ALLOWED,
                f"Invalid dice type ({allowed})"
            )

        if abs(formula.modifier) > self.max_modifier:
            return ValidationResult.failure(
                PolicyResult.MODIFIER_TOO_LARGE,
                f"Modifier too large (-{self.max_modifier} to +{self.max_modifier})"
            )

        return ValidationResult.success()

    def validate_mode(self, formula: DiceFormula, mode: RollMode) -> ValidationResult:
        """Advantage and disadvantage only apply to a single d20."""
        mode = RollMode(mode)
        if mode == RollMode.NORMAL:
            return ValidationResult.success()

        if not formula.is_single_d20:
            return ValidationResult.failure(
                PolicyResult.MODE_REQUIRES_SINGLE_D20,
                f"{mode.value.title()} only works with "
                f"{ADVANTAGE_DICE_COUNT}d{ADVANTAGE_DICE_TYPE}, got {formula.formula}"
            )

        return ValidationResult.success()

    def validate(self, formula: DiceFormula, mode: RollMode = RollMode.NORMAL) -> ValidationResult:
        """Run every check; the first failure wins."""
        validation = self.validate_formula(formula)
        if validation.valid:
            validation = self.validate_mode(formula, mode)
        return validation

    def enforce(self, formula: DiceFormula, mode: RollMode = RollMode.NORMAL) -> None:
        """
        Raise if the roll is refused.

        Raises:
            PolicyError: Carrying the failed ValidationResult
        """
        mode = RollMode(mode)
        validation = self.validate(formula, mode)
        if not validation.valid:
            logger.debug(f"Roll {formula.formula} ({mode.value}) refused: {validation.message}")
            raise PolicyError(validation)
