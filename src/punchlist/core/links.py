# src/punchlist/core/links.py

from __future__ import annotations

from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

UNIT_ID_PARAM = "unitId"


def build_share_link(public_url: str, unit_id: str) -> str:
    """Link that opens straight into a unit's detail view (e.g. for a QR code)."""
    parts = urlsplit(public_url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query[UNIT_ID_PARAM] = [unit_id]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query, doseq=True), ""))


def unit_id_from_link(url: str | None) -> str | None:
    """Read the unitId query parameter; None when absent or blank."""
    if not url:
        return None
    values = parse_qs(urlsplit(url).query).get(UNIT_ID_PARAM)
    if not values:
        return None
    unit_id = values[0].strip()
    return unit_id or None
