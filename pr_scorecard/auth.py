"""
Authentication strategies for GitHub API requests.

A provider resolves a bearer credential for each request. Two variants are
supported: a static personal access token, and a GitHub App that exchanges a
signed JWT for a short-lived installation token.
"""

import time
from typing import Any

import jwt

from pr_scorecard.config import get_app_credentials
from pr_scorecard.errors import InstallationNotFoundError
from pr_scorecard.http_client import _get_async_http_client

DEFAULT_API_URL = "https://api.github.com"

# GitHub rejects app JWTs that live longer than 10 minutes
APP_JWT_LIFETIME_SECONDS = 9 * 60
# Backdate iat to tolerate clock drift
APP_JWT_CLOCK_SKEW_SECONDS = 60


class AuthProvider:
    """Base class for token providers."""

    async def get_token(self) -> str:
        raise NotImplementedError


class StaticTokenProvider(AuthProvider):
    """Always returns the same token."""

    def __init__(self, token: str):
        self.token = token

    async def get_token(self) -> str:
        return self.token


class AppJwtSigner:
    """Signs GitHub App JWTs with the app's RSA private key."""

    def __init__(self, app_id: str, private_key: str):
        self.app_id = str(app_id)
        self.private_key = private_key

    def sign(self, now: float | None = None) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = {
            "iat": issued_at - APP_JWT_CLOCK_SKEW_SECONDS,
            "exp": issued_at + APP_JWT_LIFETIME_SECONDS,
            "iss": self.app_id,
        }
        return jwt.encode(payload, self.private_key, algorithm="RS256")


class AppTokenProvider(AuthProvider):
    """
    Resolve installation tokens for a GitHub App.

    The JWT signer and the installation id are created on first use and kept
    for the lifetime of the provider. The installation access token itself is
    requested again on every call, so token expiry never needs tracking.
    """

    def __init__(
        self,
        app_id: str,
        private_key: str,
        owner: str,
        base_url: str | None = None,
    ):
        self.app_id = app_id
        self.private_key = private_key
        self.owner = owner
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")
        self._signer: AppJwtSigner | None = None
        self._installation_id: int | None = None

    def _get_signer(self) -> AppJwtSigner:
        if self._signer is None:
            self._signer = AppJwtSigner(self.app_id, self.private_key)
        return self._signer

    async def _request(self, method: str, path: str) -> Any:
        headers = {
            "Authorization": f"Bearer {self._get_signer().sign()}",
            "Accept": "application/vnd.github+json",
        }
        client = await _get_async_http_client()
        response = await client.request(
            method, f"{self.base_url}{path}", headers=headers
        )
        response.raise_for_status()
        return response.json()

    async def _resolve_installation_id(self) -> int:
        if self._installation_id is None:
            installations = await self._request("GET", "/app/installations")
            owner = self.owner.lower()
            for installation in installations:
                login = (installation.get("account") or {}).get("login") or ""
                if login.lower() == owner:
                    self._installation_id = installation["id"]
                    break
            else:
                raise InstallationNotFoundError(self.owner)
        return self._installation_id

    async def get_token(self) -> str:
        installation_id = await self._resolve_installation_id()
        data = await self._request(
            "POST", f"/app/installations/{installation_id}/access_tokens"
        )
        return data["token"]


def get_auth_provider(
    owner: str,
    token: str | None = None,
    app_id: str | None = None,
    private_key: str | None = None,
    base_url: str | None = None,
) -> AuthProvider:
    """
    Select the token provider for one collection session.

    App credentials (arguments, or GH_APP_ID and GH_APP_PK) take precedence
    over a static token.

    Raises:
        ValueError: If neither app credentials nor a token are available.
    """
    if not (app_id and private_key):
        credentials = get_app_credentials()
        if credentials:
            app_id, private_key = credentials

    if app_id and private_key:
        return AppTokenProvider(app_id, private_key, owner, base_url=base_url)

    if not token:
        raise ValueError(
            "A GitHub token is required.\n"
            "\n"
            "Provide one of:\n"
            "  --token <token>, or GH_TOKEN / GITHUB_TOKEN in the environment\n"
            "  GitHub App credentials via --app-id/--app-private-key\n"
            "  or GH_APP_ID / GH_APP_PK\n"
        )
    return StaticTokenProvider(token)
