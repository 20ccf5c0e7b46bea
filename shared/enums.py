"""
Enumerations used throughout the dice engine.
"""
from enum import Enum, auto


class RollMode(str, Enum):
    """How a roll request is resolved."""
    NORMAL = "NORMAL"
    ADVANTAGE = "ADVANTAGE"
    DISADVANTAGE = "DISADVANTAGE"


class PolicyResult(Enum):
    """Outcome of checking a formula against a roll policy."""
    SUCCESS = auto()
    TOO_MANY_DICE = auto()
    DICE_TYPE_NOT_ALLOWED = auto()
    MODIFIER_TOO_LARGE = auto()
    MODE_REQUIRES_SINGLE_D20 = auto()


class MessageType(str, Enum):
    """Types of payloads handed to the session transport."""
    # Requests
    ROLL_DICE = "ROLL_DICE"

    # Broadcasts
    DICE_ROLLED = "DICE_ROLLED"

    # Errors
    ERROR = "ERROR"
