"""
OAuth callback routes — the provider redirects the user's browser here.

Routes (mounted at the application root, the redirect URL is fixed):
    GET /           landing page
    GET /callback   completes a pending link (``state`` + ``code``)
    GET /health     liveness + number of pending links

Failure pages carry a short, generic message only; tokens, codes and
provider error bodies are never echoed back.
"""

from __future__ import annotations

import logging
from html import escape
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from connectors.coordinator import AuthorizationCoordinator
from connectors.errors import (
    ExpiredOrInvalidStateError,
    InvalidRequestError,
    LinkError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["link"])


def get_coordinator(request: Request) -> AuthorizationCoordinator:
    """Dependency — the coordinator built at startup in ``main.create_app``."""
    return request.app.state.coordinator


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(
        content=_page(
            title="GitHub account linking",
            message="Use the link command in chat to connect your GitHub account.",
            success=True,
        )
    )


@router.get("/health")
async def health(
    coordinator: AuthorizationCoordinator = Depends(get_coordinator),
) -> Dict[str, Any]:
    return {"status": "ok", "pending_links": len(coordinator.registry)}


@router.get("/callback", response_class=HTMLResponse)
async def oauth_callback(
    state: Optional[str] = Query(None),
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    coordinator: AuthorizationCoordinator = Depends(get_coordinator),
) -> HTMLResponse:
    """
    OAuth callback — exchange the code, resolve the account, store the credential.

    Returns a small HTML page; the status code reflects the error class.
    """
    # Provider-side refusal (e.g. access_denied): burn the state so it cannot be reused.
    if error:
        coordinator.abandon(state)
        logger.info("Authorization declined at provider: %s", error)
        return HTMLResponse(
            content=_page(
                title="Authorization cancelled",
                message="GitHub did not authorize the link. Request a new link to try again.",
                success=False,
            ),
            status_code=400,
        )

    try:
        result = await coordinator.handle_callback(state, code)
    except LinkError as exc:
        _log_failure(exc)
        return HTMLResponse(
            content=_page(title="Linking failed", message=exc.user_message, success=False),
            status_code=exc.status_code,
        )
    except Exception:
        logger.exception("OAuth callback failed while storing the credential")
        return HTMLResponse(
            content=_page(title="Linking failed", message=LinkError.user_message, success=False),
            status_code=500,
        )

    return HTMLResponse(
        content=_page(
            title="Linked!",
            message=f"Your account is now linked to GitHub user <strong>{escape(result.remote_account_name)}</strong>. "
            "You can close this window and return to chat.",
            success=True,
        ),
        status_code=200,
    )


def _log_failure(exc: LinkError) -> None:
    if isinstance(exc, (InvalidRequestError, ExpiredOrInvalidStateError)):
        logger.warning("Callback rejected: %s", type(exc).__name__)
    else:
        logger.error("OAuth callback failed (%s): %s", type(exc).__name__, exc)


# ── Callback HTML template ─────────────────────────────────────────────


def _page(title: str, message: str, success: bool) -> str:
    """Small HTML page shown in the browser after the OAuth redirect."""
    color = "#00d992" if success else "#ef4444"

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(title)}</title>
    <style>
        body {{
            font-family: system-ui, sans-serif;
            background: #0b0d11; color: #e4e7ee;
            display: flex; align-items: center; justify-content: center;
            height: 100vh; margin: 0;
        }}
        .card {{
            text-align: center; padding: 40px;
            background: #12151b; border: 1px solid #1f2330;
            border-radius: 12px; max-width: 420px;
        }}
        h2 {{ color: {color}; margin: 0 0 12px; }}
        p {{ color: #a0a6b8; font-size: 0.9rem; }}
    </style>
</head>
<body>
    <div class="card">
        <h2>{escape(title)}</h2>
        <p>{message}</p>
    </div>
</body>
</html>"""
