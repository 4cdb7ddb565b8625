"""Tests for retry logic with exponential backoff."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from quickparse.utils.retry import (
    NON_RETRYABLE_STATUS_CODES,
    RETRYABLE_STATUS_CODES,
    _extract_status_code,
    _should_retry_exception,
    retry_with_backoff,
)


class MockHTTPException(Exception):
    """Mock HTTP exception with status code."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class MockAPIError(Exception):
    """Mock postgrest error carrying a string code."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


# Tests for _extract_status_code


def test_extract_status_code_from_attribute():
    assert _extract_status_code(MockHTTPException("Server error", 500)) == 500


def test_extract_status_code_from_numeric_string_code():
    assert _extract_status_code(MockAPIError("Error", "503")) == 503


def test_extract_status_code_ignores_postgres_codes():
    assert _extract_status_code(MockAPIError("Error", "PGRST116")) is None


def test_extract_status_code_from_response():
    exception = Exception("Error")
    exception.response = MagicMock()  # type: ignore
    exception.response.status_code = 502  # type: ignore
    assert _extract_status_code(exception) == 502


def test_extract_status_code_none():
    assert _extract_status_code(Exception("Generic error")) is None


# Tests for _should_retry_exception


def test_should_retry_non_retryable_status():
    for status_code in NON_RETRYABLE_STATUS_CODES:
        exception = MockHTTPException(f"Error {status_code}", status_code)
        assert _should_retry_exception(exception, (Exception,)) is False


def test_should_retry_retryable_status():
    for status_code in RETRYABLE_STATUS_CODES:
        exception = MockHTTPException(f"Error {status_code}", status_code)
        assert _should_retry_exception(exception, ()) is True


@pytest.mark.parametrize("message", ["Request timed out", "Connection reset by peer", "network down"])
def test_should_retry_network_errors(message):
    assert _should_retry_exception(Exception(message), ()) is True


def test_should_retry_matching_exception_type():
    assert _should_retry_exception(ConnectionError("boom"), (ConnectionError,)) is True


def test_should_not_retry_other_errors():
    assert _should_retry_exception(ValueError("bad lecture id"), (ConnectionError,)) is False


# Tests for the decorator


@patch("quickparse.utils.retry.time.sleep")
def test_sync_retries_then_succeeds(mock_sleep):
    mock_func = MagicMock(side_effect=[TimeoutError("timed out"), TimeoutError("timed out"), "ok"])
    mock_func.__name__ = "read_rows"

    decorated = retry_with_backoff(max_retries=3, base_delay=1.0, max_jitter=0.0)(mock_func)

    assert decorated() == "ok"
    assert mock_func.call_count == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]


@patch("quickparse.utils.retry.time.sleep")
def test_sync_gives_up_after_max_retries(mock_sleep, caplog):
    mock_func = MagicMock(side_effect=MockHTTPException("unavailable", 503))
    mock_func.__name__ = "read_rows"

    decorated = retry_with_backoff(max_retries=2, base_delay=0.1, max_jitter=0.0)(mock_func)

    with pytest.raises(MockHTTPException):
        decorated()
    assert mock_func.call_count == 3
    assert mock_sleep.call_count == 2
    assert "failed after 2 retries" in caplog.text


@patch("quickparse.utils.retry.time.sleep")
def test_sync_non_retryable_raises_immediately(mock_sleep):
    mock_func = MagicMock(side_effect=MockHTTPException("not found", 404))
    mock_func.__name__ = "read_rows"

    with pytest.raises(MockHTTPException):
        retry_with_backoff()(mock_func)()
    assert mock_func.call_count == 1
    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_async_retries_with_asyncio_sleep():
    calls = {"n": 0}

    @retry_with_backoff(max_retries=3, base_delay=0.5, max_jitter=0.0)
    async def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("connection refused")
        return [1, 2]

    with patch("quickparse.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        assert await flaky() == [1, 2]

    assert calls["n"] == 3
    assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0]


@pytest.mark.asyncio
async def test_async_non_retryable_raises_immediately():
    calls = {"n": 0}

    @retry_with_backoff()
    async def invalid():
        calls["n"] += 1
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await invalid()
    assert calls["n"] == 1


def test_decorator_preserves_metadata():
    @retry_with_backoff()
    async def documented():
        """Docstring."""

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Docstring."
