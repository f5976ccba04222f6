"""Tests for retry utilities."""

import asyncio

import httpx
import pytest

from pagecraft_core.utils.retry import RateLimitError, with_retry


class TestRetry:
    """Tests for retry logic."""

    @pytest.mark.asyncio
    async def test_success_on_first_try(self) -> None:
        """Test that successful calls don't retry."""
        call_count = 0

        async def success() -> str:
            nonlocal call_count
            call_count += 1
            return "success"

        result = await with_retry(success, operation_name="test")

        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_connection_error(self) -> None:
        """Test that ConnectionError triggers retry."""
        call_count = 0

        async def fail_then_succeed() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionError("Network failed")
            return "success"

        result = await with_retry(
            fail_then_succeed,
            max_attempts=3,
            operation_name="test",
        )

        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_retry_on_timeout(self) -> None:
        """Test that TimeoutError triggers retry."""
        call_count = 0

        async def timeout_then_succeed() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise TimeoutError("Timed out")
            return "success"

        result = await with_retry(
            timeout_then_succeed,
            max_attempts=3,
            operation_name="test",
        )

        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_max_retries_exhausted(self) -> None:
        """Test that exception is raised after max retries."""
        call_count = 0

        async def always_fail() -> str:
            nonlocal call_count
            call_count += 1
            raise ConnectionError("Always fails")

        with pytest.raises(ConnectionError):
            await with_retry(
                always_fail,
                max_attempts=3,
                operation_name="test",
            )

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_error_not_retried(self) -> None:
        """Test that non-retryable errors are not retried."""
        call_count = 0

        async def value_error() -> str:
            nonlocal call_count
            call_count += 1
            raise ValueError("Invalid value")

        with pytest.raises(ValueError):
            await with_retry(
                value_error,
                max_attempts=3,
                operation_name="test",
            )

        # Should only be called once since ValueError is not retryable
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self) -> None:
        """Connection problems reported by httpx are retried."""
        call_count = 0

        async def flaky_download() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise httpx.ConnectError("connection refused")
            return "@article{a, title={x}}"

        result = await with_retry(
            flaky_download,
            max_attempts=3,
            operation_name="download",
            min_wait=0,
        )

        assert result.startswith("@article")
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_http_status_error_not_retried(self) -> None:
        """A 404 answer is final."""
        call_count = 0
        request = httpx.Request("GET", "https://example.com/refs.bib")

        async def not_found() -> str:
            nonlocal call_count
            call_count += 1
            raise httpx.HTTPStatusError(
                "Not Found", request=request, response=httpx.Response(404, request=request)
            )

        with pytest.raises(httpx.HTTPStatusError):
            await with_retry(not_found, max_attempts=3, operation_name="download")

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self) -> None:
        """HTTP 429 answers surfaced as RateLimitError are retried."""
        call_count = 0

        async def limited() -> str:
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise RateLimitError(retry_after=1)
            return "ok"

        assert await with_retry(limited, operation_name="timestamp", min_wait=0) == "ok"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_semaphore_bounds_calls_in_flight(self) -> None:
        """Calls sharing a semaphore never exceed its size."""
        semaphore = asyncio.Semaphore(2)
        in_flight = 0
        peak = 0

        async def call() -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await asyncio.gather(
            *(with_retry(call, operation_name="fetch", semaphore=semaphore) for _ in range(6))
        )

        assert peak == 2
