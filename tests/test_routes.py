"""
Tests for the HTTP callback surface (FastAPI TestClient, no startup events).
"""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from connectors.coordinator import AuthorizationCoordinator
from connectors.pending_links import PendingLinkRegistry
from connectors.service import LinkService
from main import build_link_service, create_app


@pytest.fixture
def fake_store():
    store = MagicMock()
    store.put = AsyncMock()
    return store


def _client(make_github, fake_store, clock, **github_kwargs):
    registry = PendingLinkRegistry(600, clock=clock)
    coordinator = AuthorizationCoordinator(registry, fake_store, make_github(**github_kwargs))
    service = LinkService(coordinator, fake_store)
    return TestClient(create_app(service)), service


def _state(service, identity="42"):
    return parse_qs(urlparse(service.start_link(identity).url).query)["state"][0]


class TestCallback:
    def test_success_page_names_account(self, make_github, fake_store, clock):
        client, service = _client(make_github, fake_store, clock, token="gh_xyz", login="octocat")
        state = _state(service)

        resp = client.get("/callback", params={"state": state, "code": "abc"})

        assert resp.status_code == 200
        assert "octocat" in resp.text
        assert "gh_xyz" not in resp.text
        record = fake_store.put.await_args.args[0]
        assert (record.identity, record.remote_account_name, record.credential) == ("42", "octocat", "gh_xyz")

    def test_missing_params_is_400(self, make_github, fake_store, clock):
        client, _ = _client(make_github, fake_store, clock)
        resp = client.get("/callback", params={"state": "only-state"})
        assert resp.status_code == 400
        fake_store.put.assert_not_awaited()

    def test_unknown_state_does_not_echo_token(self, make_github, fake_store, clock, github_calls):
        client, _ = _client(make_github, fake_store, clock)
        resp = client.get("/callback", params={"state": "SECRET-STATE-VALUE", "code": "abc"})
        assert resp.status_code == 400
        assert "SECRET-STATE-VALUE" not in resp.text
        assert github_calls == []
        fake_store.put.assert_not_awaited()

    def test_replay_rejected(self, make_github, fake_store, clock):
        client, service = _client(make_github, fake_store, clock)
        state = _state(service)
        assert client.get("/callback", params={"state": state, "code": "abc"}).status_code == 200
        assert client.get("/callback", params={"state": state, "code": "abc"}).status_code == 400
        assert fake_store.put.await_count == 1

    def test_exchange_failure_is_502_without_provider_body(self, make_github, fake_store, clock):
        body = {"error": "bad_verification_code", "error_description": "PROVIDER-DETAIL"}
        client, service = _client(make_github, fake_store, clock, token_body=body)

        resp = client.get("/callback", params={"state": _state(service), "code": "abc"})

        assert resp.status_code == 502
        assert "PROVIDER-DETAIL" not in resp.text
        fake_store.put.assert_not_awaited()

    def test_identity_lookup_failure_is_502(self, make_github, fake_store, clock):
        client, service = _client(make_github, fake_store, clock, user_status=401)
        resp = client.get("/callback", params={"state": _state(service), "code": "abc"})
        assert resp.status_code == 502

    def test_storage_failure_is_generic_500(self, make_github, fake_store, clock):
        fake_store.put.side_effect = RuntimeError("disk full")
        client, service = _client(make_github, fake_store, clock)
        resp = client.get("/callback", params={"state": _state(service), "code": "abc"})
        assert resp.status_code == 500
        assert "disk full" not in resp.text

    def test_provider_denial_burns_state(self, make_github, fake_store, clock):
        client, service = _client(make_github, fake_store, clock)
        state = _state(service)

        resp = client.get("/callback", params={"state": state, "error": "access_denied"})
        assert resp.status_code == 400
        assert service.coordinator.registry.consume(state) is None


class TestMisc:
    def test_index(self, make_github, fake_store, clock):
        client, _ = _client(make_github, fake_store, clock)
        resp = client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]

    def test_health_counts_pending_links(self, make_github, fake_store, clock):
        client, service = _client(make_github, fake_store, clock)
        service.start_link("42")
        assert client.get("/health").json() == {"status": "ok", "pending_links": 1}

    def test_security_headers(self, make_github, fake_store, clock):
        client, _ = _client(make_github, fake_store, clock)
        resp = client.get("/callback", params={"state": "x", "code": "y"})
        assert resp.headers["referrer-policy"] == "no-referrer"
        assert resp.headers["cache-control"] == "no-store"
        assert "x-process-time" in resp.headers

    def test_build_link_service_wires_settings(self, settings):
        service = build_link_service(settings)
        start = service.start_link("42")
        assert start.expires_in == settings.link_ttl_seconds
        assert "client_id=client-123" in start.url
