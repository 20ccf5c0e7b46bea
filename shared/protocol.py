"""
Payload shapes exchanged with the session transport.

All messages are JSON objects with a "type" field and optional "data" field.
The transport itself (broadcast, delivery, storage) lives outside this
package; these classes only describe what is handed to it.
"""

from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING
import json

from shared.enums import MessageType

if TYPE_CHECKING:
    from tabletop.dice.session import RollRecord


@dataclass
class Message:
    """Base message structure for all payloads."""
    type: MessageType
    data: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None  # Optional, for matching requests to responses

    def to_json(self) -> str:
        """Serialize message to JSON string."""
        return json.dumps(self.to_dict())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "data": self.data,
            "request_id": self.request_id,
        }

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        """Deserialize message from JSON string."""
        raw = json.loads(json_str)
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict) -> "Message":
        """Create message from dictionary."""
        return cls(
            type=MessageType(raw["type"]),
            data=raw.get("data", {}),
            request_id=raw.get("request_id"),
        )


@dataclass
class ErrorMessage(Message):
    """Error response message."""
    type: MessageType = MessageType.ERROR

    @classmethod
    def create(cls, message: str, code: str = "ERROR", request_id: str | None = None) -> "ErrorMessage":
        """Create an error message."""
        return cls(
            data={"message": message, "code": code},
            request_id=request_id,
        )


# =============================================================================
# Requests (Client -> Transport)
# =============================================================================

@dataclass
class RollDiceRequest(Message):
    """Request to roll dice on behalf of a player."""
    type: MessageType = MessageType.ROLL_DICE

    @classmethod
    def create(
        cls,
        game_id: str,
        dice_type: int,
        count: int = 1,
        modifier: int = 0,
        reason: str | None = None,
        request_id: str | None = None
    ) -> "RollDiceRequest":
        data = {
            "gameId": game_id,
            "diceType": dice_type,
            "count": count,
            "modifier": modifier,
        }
        if reason:
            data["reason"] = reason
        return cls(data=data, request_id=request_id)

    @property
    def formula_text(self) -> str:
        """Formula equivalent of the request fields."""
        modifier = self.data.get("modifier", 0)
        sign = f"+{modifier}" if modifier > 0 else (str(modifier) if modifier < 0 else "")
        return f"{self.data.get('count', 1)}d{self.data['diceType']}{sign}"


# =============================================================================
# Broadcasts (Transport -> Session participants)
# =============================================================================

@dataclass
class DiceRolledMessage(Message):
    """Broadcast when dice are rolled."""
    type: MessageType = MessageType.DICE_ROLLED

    @classmethod
    def create(cls, game_id: str, record: "RollRecord") -> "DiceRolledMessage":
        return cls(data={
            "gameId": game_id,
            "roll": record.to_dict(),
        })


_MESSAGE_CLASSES: dict[MessageType, type[Message]] = {
    MessageType.ROLL_DICE: RollDiceRequest,
    MessageType.DICE_ROLLED: DiceRolledMessage,
    MessageType.ERROR: ErrorMessage,
}


def parse_message(json_str: str) -> Message:
    """
    Parse a JSON string into the appropriate Message subclass.

    Raises:
        ValueError: If the payload is not JSON or has an unknown type.
        KeyError: If the payload has no "type" field.
    """
    raw = json.loads(json_str)
    message_type = MessageType(raw["type"])
    message_class = _MESSAGE_CLASSES.get(message_type, Message)
    return message_class(
        type=message_type,
        data=raw.get("data", {}),
        request_id=raw.get("request_id"),
    )
