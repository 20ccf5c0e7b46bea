"""
Dice engine constants.
"""

# Dice the UI offers by default
STANDARD_DICE_TYPES = (4, 6, 8, 10, 12, 20, 100)

# Parser invariants
MIN_DICE_COUNT = 1
MIN_DICE_SIDES = 2

# Default roll policy
MAX_DICE_COUNT = 100
MAX_MODIFIER = 999

# Advantage and disadvantage apply to a single d20 only
ADVANTAGE_DICE_TYPE = 20
ADVANTAGE_DICE_COUNT = 1

# Critical results (single d20)
CRITICAL_DICE_TYPE = 20
CRITICAL_SUCCESS_FACE = 20
CRITICAL_FAILURE_FACE = 1

# History
HISTORY_PAGE_SIZE = 50
RECENT_ROLLS_COUNT = 10
DEFAULT_HISTORY_SIZE = 500

# Favorites storage key prefix (suffixed with the session id)
FAVORITES_KEY_PREFIX = "dice-favorites-"

# Payload error codes
FORMAT_ERROR_CODE = "FORMAT_ERROR"
RANGE_ERROR_CODE = "RANGE_ERROR"
POLICY_ERROR_CODE = "POLICY_ERROR"
