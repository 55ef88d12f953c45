"""
GitHubConnector — OAuth2 authorization-code flow against GitHub.

Classic OAuth App tokens do not expire and come without a refresh token,
so the single access token is all that is kept.

Every link attempt forces GitHub's account picker (``prompt=select_account``)
so a browser already signed into a different GitHub account cannot be linked
silently.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from config.settings import Settings, config
from connectors.base import BaseConnector
from connectors.errors import ExchangeFailedError, IdentityLookupFailedError

logger = logging.getLogger(__name__)


class GitHubConnector(BaseConnector):
    """OAuth2 connector for GitHub (github.com or GitHub Enterprise)."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or config
        self._transport = transport

    @property
    def display_name(self) -> str:
        return "GitHub"

    @property
    def scopes(self) -> List[str]:
        return list(self._settings.github_scopes)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.provider_timeout_seconds,
            transport=self._transport,
        )

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self._settings.github_client_id,
            "redirect_uri": self._settings.github_redirect_url,
            "scope": " ".join(self.scopes),
            "state": state,
            "prompt": "select_account",
        }
        return f"{self._settings.github_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Trade *code* for an access token at GitHub's token endpoint."""
        try:
            async with self._client() as client:
                resp = await client.post(
                    self._settings.github_token_url,
                    data={
                        "client_id": self._settings.github_client_id,
                        "client_secret": self._settings.github_client_secret,
                        "code": code,
                        "redirect_uri": self._settings.github_redirect_url,
                    },
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ExchangeFailedError(
                f"token endpoint returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExchangeFailedError(f"token request failed: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise ExchangeFailedError("token endpoint returned a non-JSON body") from exc

        if not isinstance(data, dict):
            raise ExchangeFailedError("token endpoint returned an unexpected body")

        # GitHub answers 200 with an error document for bad / reused codes.
        if "error" in data:
            raise ExchangeFailedError(
                f"GitHub OAuth error: {data.get('error_description', data['error'])}"
            )

        access_token = data.get("access_token")
        if not access_token:
            raise ExchangeFailedError("token response missing access_token")
        return access_token

    async def fetch_account_name(self, access_token: str) -> str:
        """Return the ``login`` of the user owning *access_token*."""
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"{self._settings.github_api_url.rstrip('/')}/user",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                    },
                )
                resp.raise_for_status()
                user = resp.json()
        except httpx.HTTPStatusError as exc:
            raise IdentityLookupFailedError(
                f"user endpoint returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise IdentityLookupFailedError(f"user request failed: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise IdentityLookupFailedError("user endpoint returned a non-JSON body") from exc

        login = user.get("login") if isinstance(user, dict) else None
        if not login:
            raise IdentityLookupFailedError("user profile missing login")
        return login
