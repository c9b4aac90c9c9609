from __future__ import annotations

"""
Text normalisation helpers shared across catalog seeding and search.

Public helpers:

* basic_clean(text) -> str
    Light-weight clean used when seeding catalog copy (HTML, unicode,
    whitespace). Keeps casing for display.

* normalize_field(text) -> str
    The view of a catalog field the search scorer compares against:
    lower-cased only, ``None`` becomes "". Stored whitespace is kept.

* normalize_query(text) -> str
    The query as scored: trimmed and lower-cased.

* tokenize_query(text) -> List[str]
    Splits a normalised query on whitespace runs. Order is preserved and
    duplicates are kept, since every repeated word scores again.
"""

import re
import unicodedata
from typing import List

from bs4 import BeautifulSoup

from .config import MAX_INPUT_CHARS


_WS_RE = re.compile(r"\s+")


def strip_html(text: str) -> str:
    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    return soup.get_text(" ", strip=True)


def _normalise_unicode(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("‘", "'").replace("’", "'")
    text = text.replace("“", '"').replace("”", '"')
    text = text.replace("–", "-").replace("—", "-")
    return text


def clamp_text_length(text: str, max_len: int = MAX_INPUT_CHARS) -> str:
    if len(text) > max_len:
        return text[:max_len]
    return text


def basic_clean(text: str | None) -> str:
    """Light-weight clean for catalog fields.

    * strips HTML
    * normalises unicode and whitespace
    * truncates excessively long inputs
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = clamp_text_length(text)
    text = strip_html(text)
    text = _normalise_unicode(text)
    return _WS_RE.sub(" ", text).strip()


def normalize_field(text: str | None) -> str:
    if text is None:
        return ""
    return str(text).lower()


def normalize_query(text: str | None) -> str:
    return normalize_field(text).strip()


def tokenize_query(text: str | None) -> List[str]:
    norm = normalize_query(text)
    if not norm:
        return []
    return [w for w in _WS_RE.split(norm) if w]
