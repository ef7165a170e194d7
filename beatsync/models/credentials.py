"""Spotify credential pair loaded from the document store."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """Short-lived access token plus the long-lived refresh token set out-of-band."""
    access_token: Optional[str]
    refresh_token: Optional[str]
