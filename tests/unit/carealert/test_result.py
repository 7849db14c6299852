"""Result type used to settle channel deliveries."""

import pytest

from carealert.errors import ChannelDeliveryFailure
from carealert.services.result import Result


class TestResult:
    """Test the Result type for explicit error handling."""

    def test_result_ok_creates_successful_result(self) -> None:
        result: Result[str, Exception] = Result.ok("success")
        assert result.is_ok()
        assert not result.is_err()
        assert result.unwrap() == "success"

    def test_ok_none_is_still_a_success(self) -> None:
        result: Result[None, Exception] = Result.ok(None)
        assert result.is_ok()
        assert result.unwrap() is None
        assert result.unwrap_or("fallback") is None  # type: ignore[arg-type]

    def test_result_error_creates_failed_result(self) -> None:
        error = ValueError("test error")
        result: Result[str, ValueError] = Result.err(error)
        assert not result.is_ok()
        assert result.is_err()
        assert result.unwrap_or("default") == "default"
        assert result.unwrap_err() is error

    def test_unwrap_raises_on_error_result(self) -> None:
        failure = ChannelDeliveryFailure("nurse-1", "email", "mailbox full")
        result: Result[str, ChannelDeliveryFailure] = Result.err(failure)

        with pytest.raises(ChannelDeliveryFailure, match="email delivery to nurse-1 failed"):
            result.unwrap()

    def test_unwrap_err_on_ok_raises(self) -> None:
        with pytest.raises(ValueError):
            Result.ok(1).unwrap_err()

    def test_cannot_hold_both(self) -> None:
        with pytest.raises(ValueError):
            Result(value=1, error=ValueError("x"))
