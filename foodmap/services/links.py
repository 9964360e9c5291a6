"""Parsing of user-entered map links and photo URL lists."""

import re
from collections.abc import Iterable
from urllib.parse import quote

# "@35.714765,139.796655,17z" inside a map share link
COORDINATES_PATTERN = re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)")
URL_SEPARATORS = re.compile(r"[\n,]")


def extract_lat_lng(map_url: str | None) -> tuple[float | None, float | None]:
    """Pull the embedded coordinate pair out of a map link.

    Returns:
        ``(lat, lng)``, or ``(None, None)`` when the link carries none
    """
    if not map_url:
        return None, None
    match = COORDINATES_PATTERN.search(map_url)
    if not match:
        return None, None
    return float(match.group(1)), float(match.group(2))


def dedupe_urls(urls: Iterable[str]) -> list[str]:
    """Trim, drop blanks and remove duplicates, keeping first occurrences."""
    cleaned = (u.strip() for u in urls)
    return list(dict.fromkeys(u for u in cleaned if u))


def normalize_url_text(text: str) -> list[str]:
    """Split free text on commas and newlines into a clean URL list."""
    return dedupe_urls(URL_SEPARATORS.split(text or ""))


def map_embed_url(map_url: str | None, address: str | None) -> str:
    """Embeddable map URL, pinned to coordinates when the link has them."""
    lat, lng = extract_lat_lng(map_url)
    if lat is not None and lng is not None:
        return f"https://www.google.com/maps?q={lat},{lng}&output=embed"
    if address:
        return f"https://www.google.com/maps?q={quote(address)}&output=embed"
    return ""


def map_link(map_url: str | None, address: str | None) -> str:
    """Link for opening the place in a map, falling back to an address search."""
    if map_url and map_url.strip():
        return map_url.strip()
    if address and address.strip():
        return f"https://www.google.com/maps/search/?api=1&query={quote(address.strip())}"
    return ""
