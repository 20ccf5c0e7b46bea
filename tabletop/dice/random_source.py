"""
Uniform integer sources for dice rolls.
"""
import random
import threading
from typing import Protocol, runtime_checkable

from tabletop.config import settings


@runtime_checkable
class RandomSource(Protocol):
    """Anything that can draw a uniform integer in [0, bound)."""

    def next_int(self, bound: int) -> int:
        ...


class LockedRandomSource:
    """
    Seedable Mersenne Twister guarded by a lock.

    randrange() draws with rejection sampling over getrandbits(), so
    non-power-of-two bounds (d10, d12, d20, d100) carry no modulo bias.
    """

    def __init__(self, seed: int | None = None):
        """
        Initialize the source.

        Args:
            seed: Optional seed for reproducible rolls (useful for testing)
        """
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def next_int(self, bound: int) -> int:
        if bound < 1:
            raise ValueError(f"bound must be positive, got {bound}")
        with self._lock:
            return self._random.randrange(bound)

    def seed(self, seed: int) -> None:
        """Set random seed for reproducible results."""
        with self._lock:
            self._random.seed(seed)


class SystemRandomSource:
    """OS entropy source. Holds no state, so no lock is needed."""

    def __init__(self):
        self._random = random.SystemRandom()

    def next_int(self, bound: int) -> int:
        if bound < 1:
            raise ValueError(f"bound must be positive, got {bound}")
        return self._random.randrange(bound)


_default_source: LockedRandomSource | None = None
_default_lock = threading.Lock()


def default_source() -> LockedRandomSource:
    """Get or create the process-wide source, seeded from DICE_SEED if set."""
    global _default_source
    with _default_lock:
        if _default_source is None:
            _default_source = LockedRandomSource(settings.DICE_SEED)
        return _default_source
