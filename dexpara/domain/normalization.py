"""Pure canonicalization of raw spreadsheet rows into Records.

Total by construction: any missing, None or non-string cell becomes a
string, so scoring never has to guard against absent fields.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlparse

from .models import Record
from .types import RawRow

_WS_RE = re.compile(r"\s+")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    # Spreadsheet readers hand over floats for numeric-looking cells.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _text(value: Any) -> str:
    return _WS_RE.sub(" ", _cell(value))


def slug_from_url(url: str) -> str:
    """Last non-empty path segment of a URL ("" if there is none)."""
    if not url:
        return ""
    parts = [seg for seg in urlparse(url).path.split("/") if seg]
    return parts[-1] if parts else ""


def normalize(raw: RawRow) -> Record:
    """Canonicalize one raw row.

    Examples:
        >>> normalize({"url": " /a ", "slug": "/blusa-azul/", "h1": "  Blusa   Azul "})
        Record(url='/a', slug='blusa-azul', meta_title='', meta_description='', h1='Blusa Azul')
    """
    url = _cell(raw.get("url"))
    slug = _cell(raw.get("slug")).strip("/")
    if not slug:
        slug = slug_from_url(url)
    return Record(
        url=url,
        slug=slug,
        meta_title=_text(raw.get("meta_title")),
        meta_description=_text(raw.get("meta_description")),
        h1=_text(raw.get("h1")),
    )


def normalize_rows(rows: Iterable[RawRow]) -> list[Record]:
    return [normalize(r) for r in rows]
