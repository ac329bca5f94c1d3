"""
Strava OAuth flow.

Handles:
- Authorization URL generation
- Code exchange for tokens
- Token refresh
- Token revocation (deauthorization)
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from tempo_guide.config import StravaCredentials
from tempo_guide.shared.errors import UpstreamError

logger = logging.getLogger(__name__)


class StravaOAuthError(UpstreamError):
    """OAuth-related error (token endpoint rejected the request or failed)."""
    pass


class StravaOAuth:
    """
    Strava OAuth handler.

    Credentials are passed in explicitly; nothing is read from globals.

    Usage:
        oauth = StravaOAuth(settings.strava_credentials())
        auth_url = oauth.get_authorization_url(
            redirect_uri="https://example.com/callback",
            state=state_token
        )
        tokens = await oauth.exchange_code(code)
        tokens = await oauth.refresh_token(refresh_token)
    """

    AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
    TOKEN_URL = "https://www.strava.com/oauth/token"
    DEAUTHORIZE_URL = "https://www.strava.com/oauth/deauthorize"

    def __init__(
        self,
        credentials: StravaCredentials,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 20.0
    ):
        self.credentials = credentials
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Generate Strava OAuth authorization URL.

        Always forces the consent screen so a reconnect re-grants scopes.

        Args:
            redirect_uri: URL Strava redirects to after authorization
            state: Opaque state token for CSRF/replay protection

        Returns:
            Authorization URL string
        """
        params = {
            "client_id": self.credentials.client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "approval_prompt": "force",
            "scope": self.credentials.scope,
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def _post_token(self, data: dict, action: str) -> dict:
        try:
            async with self._client() as client:
                response = await client.post(self.TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Strava token {action} request failed: {e}")
            raise StravaOAuthError(f"Token {action} failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Strava token {action} failed: {response.status_code}")
            raise StravaOAuthError(
                f"Token {action} failed: {response.status_code}"
            )

        return response.json()

    async def exchange_code(self, code: str) -> dict:
        """
        Exchange authorization code for tokens.

        Args:
            code: Authorization code from Strava callback

        Returns:
            {
                "access_token": "...",
                "refresh_token": "...",
                "expires_at": 1234567890,
                "athlete": {"id": 123, "firstname": "...", ...}
            }

        Raises:
            StravaOAuthError: If token exchange fails
        """
        return await self._post_token(
            {
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "code": code,
                "grant_type": "authorization_code",
            },
            action="exchange",
        )

    async def refresh_token(self, refresh_token: str) -> dict:
        """
        Refresh an expired access token.

        Returns:
            {
                "access_token": "...",
                "refresh_token": "...",
                "expires_at": 1234567890
            }

        Raises:
            StravaOAuthError: If token refresh fails
        """
        return await self._post_token(
            {
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            action="refresh",
        )

    async def deauthorize(self, access_token: str) -> bool:
        """
        Revoke Strava access (user disconnect).

        Returns:
            True if deauthorization was successful
        """
        async with self._client() as client:
            response = await client.post(
                self.DEAUTHORIZE_URL,
                headers={"Authorization": f"Bearer {access_token}"}
            )
            return response.status_code == 200
