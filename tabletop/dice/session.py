"""
Roll service for a single game session.

Turns a player's roll request into an immutable RollRecord, the payload a
caller broadcasts to the other participants of the session.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from shared.constants import (
    CRITICAL_DICE_TYPE, CRITICAL_SUCCESS_FACE, CRITICAL_FAILURE_FACE
)
from shared.enums import RollMode

from .dice import Dice
from .history import RollHistory
from .parser import DiceFormula, parse_formula
from .rules import RollPolicy


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollRequest:
    """What a player asked to roll."""
    formula_text: str
    mode: RollMode = RollMode.NORMAL
    reason: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "mode", RollMode(self.mode))


@dataclass(frozen=True)
class RollRecord:
    """A realized roll, ready to hand to the session transport."""
    game_id: str
    user_id: str
    username: str
    formula: str
    dice_type: int
    count: int
    modifier: int
    results: tuple[int, ...]
    total: int
    reason: str | None = None
    mode: RollMode = RollMode.NORMAL
    kept: int | None = None
    discarded: int | None = None
    role: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self):
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "mode", RollMode(self.mode))

    @property
    def deciding_die(self) -> int | None:
        """The die that decides a single-d20 roll: the kept one or the only one."""
        if self.dice_type != CRITICAL_DICE_TYPE or self.count != 1:
            return None
        return self.kept if self.kept is not None else self.results[0]

    @property
    def is_critical_success(self) -> bool:
        return self.deciding_die == CRITICAL_SUCCESS_FACE

    @property
    def is_critical_failure(self) -> bool:
        return self.deciding_die == CRITICAL_FAILURE_FACE

    def to_dict(self) -> dict[str, Any]:
        """Convert to the transport's wire keys."""
        return {
            "id": self.id,
            "gameId": self.game_id,
            "userId": self.user_id,
            "username": self.username,
            "formula": self.formula,
            "diceType": self.dice_type,
            "count": self.count,
            "modifier": self.modifier,
            "results": list(self.results),
            "total": self.total,
            "reason": self.reason,
            "mode": self.mode.value,
            "advantage": self.mode == RollMode.ADVANTAGE,
            "disadvantage": self.mode == RollMode.DISADVANTAGE,
            "kept": self.kept,
            "discarded": self.discarded,
            "role": self.role,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollRecord":
        """Create from the transport's wire keys."""
        return cls(
            id=data["id"],
            game_id=data["gameId"],
            user_id=data["userId"],
            username=data["username"],
            formula=data["formula"],
            dice_type=data["diceType"],
            count=data["count"],
            modifier=data["modifier"],
            results=tuple(data["results"]),
            total=data["total"],
            reason=data.get("reason"),
            mode=RollMode(data.get("mode", RollMode.NORMAL.value)),
            kept=data.get("kept"),
            discarded=data.get("discarded"),
            role=data.get("role"),
            timestamp=data["timestamp"],
        )


class DiceSession:
    """
    Rolls dice for the players of one game and keeps their history.
    """

    def __init__(
        self,
        game_id: str,
        policy: RollPolicy | None = None,
        dice: Dice | None = None,
        history: RollHistory | None = None
    ):
        self.game_id = game_id
        self.policy = policy or RollPolicy.from_config()
        self.dice = dice or Dice()
        self.history = history if history is not None else RollHistory.from_config()

    def roll(
        self,
        user_id: str,
        username: str,
        request: RollRequest,
        role: str | None = None
    ) -> RollRecord:
        """
        Roll dice for a player.

        ``role`` is the player's table role (for example "dm"), copied onto
        the record for display.

        Raises:
            FormatError: If the formula does not parse
            RangeError: If the formula has no dice or a one-sided die
            PolicyError: If the policy refuses the formula or mode
        """
        formula = parse_formula(request.formula_text)
        self.policy.enforce(formula, request.mode)

        if request.mode == RollMode.NORMAL:
            record = self._roll_normal(user_id, username, formula, request.reason, role)
        else:
            record = self._roll_advantage(user_id, username, formula, request, role)

        self.history.append(record)
        logger.info(f"Roll {record.formula} = {record.total} by {username}")
        return record

    def _roll_normal(
        self,
        user_id: str,
        username: str,
        formula: DiceFormula,
        reason: str | None,
        role: str | None
    ) -> RollRecord:
        result = self.dice.roll_formula(formula)
        return RollRecord(
            game_id=self.game_id,
            user_id=user_id,
            username=username,
            formula=formula.formula,
            dice_type=formula.dice_type,
            count=formula.count,
            modifier=formula.modifier,
            results=result.results,
            total=result.total,
            reason=reason,
            role=role,
        )

    def _roll_advantage(
        self,
        user_id: str,
        username: str,
        formula: DiceFormula,
        request: RollRequest,
        role: str | None
    ) -> RollRecord:
        if request.mode == RollMode.ADVANTAGE:
            roll = self.dice.roll_with_advantage(formula.dice_type)
        else:
            roll = self.dice.roll_with_disadvantage(formula.dice_type)

        # The resolver returns the bare kept die; the modifier is ours to add
        roll = roll.with_modifier(formula.modifier)
        reason = request.reason or f"{request.mode.value.title()}: {formula.formula}"

        return RollRecord(
            game_id=self.game_id,
            user_id=user_id,
            username=username,
            formula=formula.formula,
            dice_type=formula.dice_type,
            count=formula.count,
            modifier=formula.modifier,
            results=roll.rolled,
            total=roll.total,
            reason=reason,
            mode=request.mode,
            kept=roll.kept,
            discarded=roll.discarded,
            role=role,
        )
