import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root / "src"))

from rowa.core.access_control import OwnerAccessControl
from rowa.core.structured_logger import StructuredLogger
from rowa.core.token_ledger import RowaToken
from rowa.vesting.categories import VestingCategory
from rowa.vesting.vesting_manager import VestingManager

OWNER = "0xOwner000000000000000000000000000000000001"
TOKEN_ADDRESS = "0xRowaToken0000000000000000000000000000001"
VESTING_POOL = "0xVestingPool00000000000000000000000000001"
ALICE = "0xAlice000000000000000000000000000000000001"
BOB = "0xBob00000000000000000000000000000000000001"
MALLORY = "0xMallory0000000000000000000000000000000001"

FUND_RECIPIENTS = {
    VestingCategory.VGP: "0xVgpFund00000000000000000000000000000001",
    VestingCategory.LP: "0xLpFund000000000000000000000000000000001",
    VestingCategory.LIQUIDITY: "0xLiqFund00000000000000000000000000000001",
    VestingCategory.RESERVE: "0xReserveFund000000000000000000000000001",
}

START = 1_700_000_000


class FakeClock:
    """Settable time provider."""

    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def structured_logger():
    return StructuredLogger("ROWA_Test", log_level="DEBUG")


@pytest.fixture
def access():
    return OwnerAccessControl(OWNER)


@pytest.fixture
def token(access, clock, structured_logger):
    return RowaToken(TOKEN_ADDRESS, access, logger=structured_logger, time_provider=clock)


@pytest.fixture
def manager(token, access, clock, structured_logger):
    """Manager whose token has not started vesting yet."""
    return VestingManager(
        ledger=token,
        access=access,
        vesting_pool=VESTING_POOL,
        fund_recipients=FUND_RECIPIENTS,
        time_provider=clock,
        logger=structured_logger,
    )


@pytest.fixture
def started_manager(manager, token):
    """Manager with the whole supply minted into the vesting pool at START."""
    token.start_vesting(OWNER, VESTING_POOL, now=START)
    return manager


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def alice():
    return ALICE


@pytest.fixture
def bob():
    return BOB


@pytest.fixture
def mallory():
    return MALLORY


@pytest.fixture
def pool():
    return VESTING_POOL


@pytest.fixture
def fund_recipients():
    return dict(FUND_RECIPIENTS)


@pytest.fixture
def start_time():
    return START
