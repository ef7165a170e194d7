"""Track-name cleanup and search-query construction."""
import re

# Phrases that appear in store titles but not in Spotify track names
NOISE_PHRASES = ("Original Mix", "Extended Mix")

# A run of noise phrases and parentheses, with the whitespace around it
_NOISE_RUN_RE = re.compile(
    r"(?:\s*(?:" + "|".join(re.escape(p) for p in NOISE_PHRASES) + r"|[()]))+\s*",
    re.IGNORECASE,
)


def sanitize_track_name(name: str) -> str:
    """Strip noise phrases and parentheses; spacing elsewhere is left alone.

    'Song (Original Mix)' -> 'Song'
    """
    return _NOISE_RUN_RE.sub(" ", name or "").strip()


def build_search_query(artist: str, name: str) -> str:
    return f"artist:{artist} track:{sanitize_track_name(name)}"
