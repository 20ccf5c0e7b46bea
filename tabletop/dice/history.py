"""
Roll history and statistics.

Keeps realized rolls in memory, per process, and derives the per-player and
per-game summaries shown next to the dice tray.
"""
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from shared.constants import HISTORY_PAGE_SIZE, RECENT_ROLLS_COUNT
from tabletop.config import settings

if TYPE_CHECKING:
    from .session import RollRecord


@dataclass
class PlayerStats:
    """Summary of one player's rolls in a game."""
    total_rolls: int = 0
    average: float = 0
    highest: int = 0
    lowest: int = 0
    critical_successes: int = 0
    critical_failures: int = 0
    distribution: dict[str, int] = field(default_factory=dict)
    recent_rolls: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRolls": self.total_rolls,
            "average": self.average,
            "highest": self.highest,
            "lowest": self.lowest,
            "criticalSuccesses": self.critical_successes,
            "criticalFailures": self.critical_failures,
            "distribution": dict(self.distribution),
            "recentRolls": list(self.recent_rolls),
        }


@dataclass
class GameStats:
    """Summary of every roll in a game."""
    total_rolls: int = 0
    player_stats: dict[str, dict[str, Any]] = field(default_factory=dict)
    most_active_player: dict[str, Any] | None = None
    highest_roll: dict[str, Any] | None = None
    lowest_roll: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRolls": self.total_rolls,
            "playerStats": {k: dict(v) for k, v in self.player_stats.items()},
            "mostActivePlayer": self.most_active_player,
            "highestRoll": self.highest_roll,
            "lowestRoll": self.lowest_roll,
        }


def _roll_summary(record: "RollRecord") -> dict[str, Any]:
    return {
        "username": record.username,
        "formula": record.formula,
        "total": record.total,
    }


class RollHistory:
    """
    Thread-safe, append-only log of roll records.

    When ``max_size`` is set the oldest records are dropped first.
    """

    def __init__(self, max_size: int | None = None):
        self._records: deque["RollRecord"] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls) -> "RollHistory":
        return cls(max_size=settings.DICE_HISTORY_SIZE or None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def append(self, record: "RollRecord") -> None:
        with self._lock:
            self._records.append(record)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def _for_game(self, game_id: str) -> list["RollRecord"]:
        with self._lock:
            return [r for r in self._records if r.game_id == game_id]

    def recent(self, game_id: str, limit: int = HISTORY_PAGE_SIZE) -> list["RollRecord"]:
        """Latest rolls of a game, newest first."""
        rolls = self._for_game(game_id)
        return list(reversed(rolls[-limit:])) if limit > 0 else []

    def player_stats(self, game_id: str, user_id: str) -> PlayerStats:
        """Statistics for one player's rolls in a game."""
        rolls = [r for r in self._for_game(game_id) if r.user_id == user_id]
        if not rolls:
            return PlayerStats()

        totals = [r.total for r in rolls]
        distribution: dict[str, int] = {}
        for roll in rolls:
            key = f"d{roll.dice_type}"
            distribution[key] = distribution.get(key, 0) + 1

        recent = [
            {
                "formula": r.formula,
                "total": r.total,
                "results": list(r.results),
                "reason": r.reason,
                "timestamp": r.timestamp,
            }
            for r in reversed(rolls[-RECENT_ROLLS_COUNT:])
        ]

        return PlayerStats(
            total_rolls=len(rolls),
            average=round(sum(totals) / len(totals), 2),
            highest=max(totals),
            lowest=min(totals),
            critical_successes=sum(1 for r in rolls if r.is_critical_success),
            critical_failures=sum(1 for r in rolls if r.is_critical_failure),
            distribution=distribution,
            recent_rolls=recent,
        )

    def game_stats(self, game_id: str) -> GameStats:
        """Statistics for every roll in a game."""
        rolls = self._for_game(game_id)
        if not rolls:
            return GameStats()

        # Insertion order is first-seen order; most-active ties resolve to the earliest
        per_player: dict[str, dict[str, Any]] = {}
        for roll in rolls:
            entry = per_player.setdefault(
                roll.user_id, {"username": roll.username, "count": 0, "total": 0}
            )
            entry["count"] += 1
            entry["total"] += roll.total

        most_active = max(per_player.values(), key=lambda p: p["count"])
        highest = max(rolls, key=lambda r: r.total)
        # Lowest ties resolve to the latest roll
        lowest = min(reversed(rolls), key=lambda r: r.total)

        return GameStats(
            total_rolls=len(rolls),
            player_stats=per_player,
            most_active_player={
                "username": most_active["username"],
                "count": most_active["count"],
            },
            highest_roll=_roll_summary(highest),
            lowest_roll=_roll_summary(lowest),
        )
