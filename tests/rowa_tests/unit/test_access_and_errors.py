import pytest

from rowa.core.access_control import OwnerAccessControl
from rowa.core.manager_interfaces import OwnershipProvider, TokenLedgerProvider
from rowa.core.vesting_exceptions import (
    CapExceededError,
    InsufficientVestedError,
    LedgerTransferError,
    ServicePausedError,
    UnauthorizedError,
    ValidationError,
    VestingError,
    get_error_context,
    is_recoverable_error,
)


class TestOwnerAccessControl:
    def test_owner_check_is_case_insensitive(self):
        access = OwnerAccessControl("0xAbC")
        assert access.is_owner("0xabc")
        assert not access.is_owner("")
        assert not access.is_owner("0xdef")

    def test_require_owner(self):
        access = OwnerAccessControl("0xabc")
        access.require_owner("0xabc", "test")
        with pytest.raises(UnauthorizedError, match="Ownable: caller is not the owner"):
            access.require_owner("0xdef", "test")

    def test_transfer_ownership(self):
        access = OwnerAccessControl("0xabc")
        access.transfer_ownership("0xabc", "0xdef")
        assert access.owner == "0xdef"
        with pytest.raises(UnauthorizedError):
            access.transfer_ownership("0xabc", "0x123")
        with pytest.raises(ValidationError):
            access.transfer_ownership("0xdef", "")

    def test_empty_owner_rejected(self):
        with pytest.raises(ValidationError):
            OwnerAccessControl("")


class TestErrorHelpers:
    def test_every_error_is_a_vesting_error(self):
        assert issubclass(CapExceededError, VestingError)
        assert issubclass(ServicePausedError, VestingError)

    def test_recoverability(self):
        assert is_recoverable_error(ServicePausedError("paused"))
        assert not is_recoverable_error(LedgerTransferError("failed"))
        assert is_recoverable_error(LedgerTransferError("failed", recoverable=True))
        assert is_recoverable_error(TimeoutError())
        assert not is_recoverable_error(ValueError())

    def test_cap_context(self):
        exc = CapExceededError("over", category="team", requested=5, available=2)
        context = get_error_context(exc)
        assert context["error_type"] == "CapExceededError"
        assert context["category"] == "team"
        assert context["requested"] == 5
        assert context["available"] == 2

    def test_release_context(self):
        exc = InsufficientVestedError("short", requested=9, releasable=3, details={"id": "x"})
        context = get_error_context(exc)
        assert context["releasable"] == 3
        assert context["details"] == {"id": "x"}


def test_reference_collaborators_satisfy_protocols(token, access):
    assert isinstance(token, TokenLedgerProvider)
    assert isinstance(access, OwnershipProvider)
