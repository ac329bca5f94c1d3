"""
Strava API client.

Provides methods for interacting with Strava API.
Handles rate limiting and error handling.

Strava API Limits:
- 200 requests per 15 minutes
- 2,000 requests per day
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from tempo_guide.config import StravaCredentials
from tempo_guide.shared.errors import UpstreamError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class StravaAPIError(UpstreamError):
    """Strava API error."""
    pass


class StravaAuthError(UpstreamError):
    """Authentication/authorization error."""
    pass


class StravaRateLimitError(UpstreamError):
    """Rate limit exceeded."""
    pass


# =============================================================================
# Rate Limiter
# =============================================================================

class StravaRateLimiter:
    """
    In-memory rate limiter for Strava API.

    Limits:
    - 200 requests per 15 minutes (short-term)
    - 2000 requests per day (daily)
    """

    def __init__(
        self,
        short_limit: int = 200,
        short_window_minutes: int = 15,
        daily_limit: int = 2000
    ):
        self.short_limit = short_limit
        self.short_window = timedelta(minutes=short_window_minutes)
        self.daily_limit = daily_limit

        self.short_counts: dict[str, list[datetime]] = defaultdict(list)
        self.daily_counts: dict[str, int] = defaultdict(int)
        self.daily_date = datetime.now().date()
        self._lock = asyncio.Lock()

    async def check_and_increment(self, key: str = "global") -> bool:
        """
        Check if request is allowed and increment counters.

        Returns True if request is allowed, False if rate limited.
        """
        async with self._lock:
            now = datetime.now()

            if now.date() != self.daily_date:
                self.daily_counts.clear()
                self.daily_date = now.date()
                logger.info("Daily rate limit counters reset")

            cutoff = now - self.short_window
            self.short_counts[key] = [
                ts for ts in self.short_counts[key]
                if ts > cutoff
            ]

            short_count = len(self.short_counts[key])
            daily_count = self.daily_counts[key]

            if short_count >= self.short_limit:
                logger.warning(
                    f"Strava rate limit hit: {short_count}/{self.short_limit} "
                    f"requests in 15 min for {key}"
                )
                return False

            if daily_count >= self.daily_limit:
                logger.warning(
                    f"Strava daily limit hit: {daily_count}/{self.daily_limit} "
                    f"for {key}"
                )
                return False

            self.short_counts[key].append(now)
            self.daily_counts[key] += 1

            return True


# Global rate limiter instance
rate_limiter = StravaRateLimiter()


# =============================================================================
# Strava Client
# =============================================================================

class StravaClient:
    """
    Async client for the Strava REST API.

    Usage:
        client = StravaClient(settings.strava_credentials())
        stats = await client.get_athlete_stats(token, athlete_id)
        activities = await client.list_activities(token, after=since)
    """

    API_URL = "https://www.strava.com/api/v3"
    MAX_PER_PAGE = 200

    def __init__(
        self,
        credentials: StravaCredentials,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limiter: Optional[StravaRateLimiter] = None,
        timeout: float = 30.0
    ):
        self.credentials = credentials
        self._transport = transport
        self._limiter = limiter or rate_limiter
        self._timeout = timeout

    async def _api_request(
        self,
        method: str,
        endpoint: str,
        access_token: str,
        params: Optional[dict] = None
    ):
        """
        Make an authenticated API request with rate limiting.

        Raises:
            StravaRateLimitError: If rate limit exceeded
            StravaAuthError: If authentication fails
            StravaAPIError: If API returns error or the request fails
        """
        if not await self._limiter.check_and_increment(self.credentials.client_id or "global"):
            raise StravaRateLimitError("Rate limit exceeded")

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.request(
                    method=method,
                    url=f"{self.API_URL}{endpoint}",
                    headers={"Authorization": f"Bearer {access_token}"},
                    params=params
                )
        except httpx.HTTPError as e:
            raise StravaAPIError(f"Request to {endpoint} failed: {e}") from e

        if "X-RateLimit-Limit" in response.headers:
            logger.debug(
                f"Strava rate limit: {response.headers.get('X-RateLimit-Usage')} "
                f"/ {response.headers.get('X-RateLimit-Limit')}"
            )

        if response.status_code == 401:
            raise StravaAuthError("Invalid or expired token")
        elif response.status_code == 429:
            raise StravaRateLimitError("Strava rate limit exceeded")
        elif response.status_code != 200:
            raise StravaAPIError(f"API error: {response.status_code}")

        return response.json()

    async def get_athlete_stats(self, access_token: str, athlete_id: str) -> dict:
        """
        Get athlete run totals.

        Returns the raw stats body with recent_run_totals, ytd_run_totals
        and all_run_totals.
        """
        return await self._api_request(
            "GET",
            f"/athletes/{athlete_id}/stats",
            access_token
        )

    async def list_activities(
        self,
        access_token: str,
        after: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 30
    ) -> list[dict]:
        """
        Get one page of athlete activities.

        Args:
            access_token: Valid access token
            after: Only activities after this time (naive UTC)
            page: Page number (1-based)
            per_page: Results per page (max 200)
        """
        params = {"page": page, "per_page": min(per_page, self.MAX_PER_PAGE)}
        if after:
            params["after"] = int(after.replace(tzinfo=timezone.utc).timestamp())

        return await self._api_request(
            "GET",
            "/athlete/activities",
            access_token,
            params
        )

    async def get_activity(self, access_token: str, activity_id: int) -> dict:
        """Get detailed activity info, including best_efforts for runs."""
        return await self._api_request(
            "GET",
            f"/activities/{activity_id}",
            access_token,
            params={"include_all_efforts": "false"}
        )
