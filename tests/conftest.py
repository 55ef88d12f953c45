"""
Shared fixtures: a throwaway SQLite database, a fixed-key cipher,
a controllable clock and a fake GitHub built on ``httpx.MockTransport``.
"""

from typing import Callable, List, Optional

import httpx
import pytest
import pytest_asyncio

from config.settings import Settings
from connectors.credential_store import CredentialStore
from connectors.encryption import CredentialCipher
from connectors.github import GitHubConnector
from database.session import build_engine, build_session_factory, init_db

TEST_KEY = "0123456789abcdef0123456789abcdef"  # 32 bytes


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(TEST_KEY)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_client_id="client-123",
        github_client_secret="secret-456",
        github_redirect_url="http://localhost:8080/callback",
        token_encryption_key=TEST_KEY,
        provider_timeout_seconds=2.0,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await init_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory, cipher) -> CredentialStore:
    return CredentialStore(session_factory, cipher)


@pytest.fixture
def github_calls() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_github(settings, github_calls) -> Callable[..., GitHubConnector]:
    """Factory for a connector talking to a scripted fake GitHub."""

    def _make(
        token: Optional[str] = "gh_xyz",
        login: Optional[str] = "octocat",
        token_status: int = 200,
        user_status: int = 200,
        token_body: Optional[dict] = None,
        raise_on: Optional[str] = None,
    ) -> GitHubConnector:
        def handler(request: httpx.Request) -> httpx.Response:
            github_calls.append(request)
            if raise_on and request.url.path.endswith(raise_on):
                raise httpx.ConnectTimeout("timed out", request=request)
            if request.url.path == "/login/oauth/access_token":
                body = token_body if token_body is not None else {
                    "access_token": token,
                    "token_type": "bearer",
                    "scope": "repo,user:email,read:org",
                }
                return httpx.Response(token_status, json=body)
            if request.url.path == "/user":
                return httpx.Response(user_status, json={"login": login, "id": 1})
            return httpx.Response(404, json={"message": "Not Found"})

        return GitHubConnector(settings, transport=httpx.MockTransport(handler))

    return _make
