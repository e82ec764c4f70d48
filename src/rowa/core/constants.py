"""
ROWA Vesting Constants

Token supply figures and time units shared by the vesting engine, the
reference token ledger and the tests.

NOTE: Supply figures and category caps (see ``rowa.vesting.categories``) are
fixed for the lifetime of a deployment. Changing them invalidates every
persisted allocation counter.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS
# =============================================================================

SECONDS_PER_WEEK: Final[int] = 604800  # 60 * 60 * 24 * 7

# =============================================================================
# TOKEN CONSTANTS
# =============================================================================

TOKEN_NAME: Final[str] = "ROWA Token"
TOKEN_SYMBOL: Final[str] = "ROWA"
TOKEN_DECIMALS: Final[int] = 5
TOKEN_UNIT: Final[int] = 10**TOKEN_DECIMALS

# 1,000,000,000 ROWA expressed in base units
TOTAL_SUPPLY: Final[int] = 1_000_000_000 * TOKEN_UNIT

# =============================================================================
# PERSISTENCE CONSTANTS
# =============================================================================

STATE_FORMAT_VERSION: Final[str] = "1.0"
MAX_STATE_BACKUPS: Final[int] = 10
