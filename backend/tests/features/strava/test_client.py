"""
Tests for StravaClient error mapping and rate limiting.
"""

import httpx
import pytest

from tempo_guide.features.strava import (
    StravaAPIError,
    StravaAuthError,
    StravaClient,
    StravaRateLimiter,
    StravaRateLimitError,
)

ACTIVITY_PATH = "/api/v3/activities/1"


class TestErrorMapping:
    """HTTP status -> exception."""

    @pytest.mark.parametrize("status,error", [
        (401, StravaAuthError),
        (429, StravaRateLimitError),
        (404, StravaAPIError),
        (500, StravaAPIError),
    ])
    async def test_status(self, strava, strava_client, status, error):
        strava.reply("GET", ACTIVITY_PATH, status, {"message": "nope"})

        with pytest.raises(error):
            await strava_client.get_activity("token", 1)

    async def test_network_failure(self, strava, strava_client):
        strava.on("GET", ACTIVITY_PATH, lambda request: httpx.ConnectError("refused"))

        with pytest.raises(StravaAPIError):
            await strava_client.get_activity("token", 1)

    async def test_success_sends_bearer(self, strava, strava_client):
        strava.reply("GET", ACTIVITY_PATH, 200, {"id": 1})

        assert await strava_client.get_activity("token", 1) == {"id": 1}
        assert strava.calls(ACTIVITY_PATH)[0].headers["Authorization"] == "Bearer token"


class TestRateLimiter:
    """Tests for StravaRateLimiter."""

    async def test_short_window_limit(self):
        limiter = StravaRateLimiter(short_limit=2)

        assert await limiter.check_and_increment()
        assert await limiter.check_and_increment()
        assert not await limiter.check_and_increment()

    async def test_limited_client_makes_no_request(self, credentials, strava):
        client = StravaClient(
            credentials, transport=strava.transport, limiter=StravaRateLimiter(short_limit=0)
        )

        with pytest.raises(StravaRateLimitError):
            await client.get_activity("token", 1)
        assert strava.requests == []
