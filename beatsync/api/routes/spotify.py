"""Spotify OAuth: auth URL and callback. Stores the refresh token used by reconciliation."""
import asyncio
import urllib.parse
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel

from beatsync.api.state import AppState, get_state
from beatsync.config import (
    BEATSYNC_WEB_ORIGIN,
    REFRESH_TOKEN_PATH,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
)
from beatsync.core.spotify_client import exchange_code
from beatsync.core.token_manager import clear_tokens, save_tokens

router = APIRouter()


class CompleteLoginBody(BaseModel):
    """Either the full redirect URL (with ?code=...) or the code alone."""
    redirect_url: Optional[str] = None
    code: Optional[str] = None


async def _exchange_and_save(state: AppState, code: str) -> bool:
    token_info = await asyncio.to_thread(exchange_code, code)
    if not token_info:
        return False
    await save_tokens(state.store, token_info)
    return True


@router.get("/auth-url")
async def get_auth_url(state: AppState = Depends(get_state)):
    """Return Spotify OAuth authorization URL and whether a refresh token is stored."""
    if not SPOTIFY_CLIENT_ID:
        return {"auth_url": None, "error": "SPOTIFY_CLIENT_ID not set", "logged_in": False}
    logged_in = bool(await state.store.get(REFRESH_TOKEN_PATH))
    base = "https://accounts.spotify.com/authorize"
    params = {
        "client_id": SPOTIFY_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "scope": SPOTIFY_SCOPES,
    }
    url = f"{base}?{urllib.parse.urlencode(params)}"
    return {"auth_url": url, "logged_in": logged_in}


@router.get("/callback")
async def spotify_callback(code: str | None = None, state: AppState = Depends(get_state)):
    """Exchange code for tokens, store them, then redirect to web app or show success."""
    if not code:
        return HTMLResponse(
            "<body><p>Missing authorization code. Try linking Spotify again.</p></body>",
            status_code=400,
        )
    if not await _exchange_and_save(state, code):
        return HTMLResponse(
            "<body><p>Failed to link Spotify. Check backend logs and try again.</p></body>",
            status_code=500,
        )
    if BEATSYNC_WEB_ORIGIN:
        redirect_url = f"{BEATSYNC_WEB_ORIGIN.rstrip('/')}/connect?spotify=success"
        return RedirectResponse(url=redirect_url, status_code=302)
    return HTMLResponse(
        "<body><p>Spotify linked successfully. You can close this window.</p></body>"
    )


@router.post("/complete-login")
async def complete_login(body: CompleteLoginBody, state: AppState = Depends(get_state)):
    """
    Exchange an auth code for tokens and save (for headless setups).
    Send either the full redirect URL (after Spotify redirected you and the page failed to load)
    or just the code.
    """
    code: Optional[str] = None
    if body.code:
        code = body.code.strip()
    elif body.redirect_url:
        url = body.redirect_url.strip()
        if "?" in url:
            parsed = urllib.parse.urlparse(url)
            params = urllib.parse.parse_qs(parsed.query)
            code = (params.get("code") or [None])[0]
        if not code:
            raise HTTPException(
                status_code=400,
                detail="No 'code' in redirect URL. Paste the full URL from the address bar after logging in.",
            )
    else:
        raise HTTPException(
            status_code=400,
            detail="Send either 'redirect_url' or 'code' in the request body.",
        )
    if not await _exchange_and_save(state, code):
        raise HTTPException(
            status_code=502,
            detail="Failed to exchange code for tokens. Check SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, and redirect_uri.",
        )
    return {"ok": True, "message": "Spotify linked successfully."}


@router.post("/logout")
async def logout(state: AppState = Depends(get_state)):
    """Clear stored Spotify tokens; reconciliation stops matching until relinked."""
    await clear_tokens(state.store)
    return {"ok": True}
