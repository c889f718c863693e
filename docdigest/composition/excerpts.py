"""Excerpt variants derived from markdown document text."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Tuple

import yaml

from ..models import DocumentMetadata, DocumentPatch

ELLIPSIS = "..."

_FRONT_MATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_BLANK_RUNS = re.compile(r"\n{3,}")


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Return (front matter mapping, body); malformed front matter is kept in the body."""
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    try:
        loaded = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return {}, text
    meta = loaded if isinstance(loaded, dict) else {}
    return meta, text[match.end():]


def normalize(text: str) -> str:
    lines = [line.rstrip() for line in text.replace("\r\n", "\n").split("\n")]
    return _BLANK_RUNS.sub("\n\n", "\n".join(lines)).strip()


def truncate(text: str, limit: int) -> str:
    """Shorten to at most `limit` characters, preferring line then word boundaries."""
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return text[:limit]
    room = limit - len(ELLIPSIS)
    window = text[:room]
    cut = window.rfind("\n")
    if cut < room // 2:
        cut = window.rfind(" ")
    if cut < room // 2:
        cut = room
    return window[:cut].rstrip() + ELLIPSIS


def build_excerpts(text: str, limits: Iterable[int]) -> Dict[int, str]:
    """One excerpt per positive limit, each no longer than its limit."""
    _, body = split_front_matter(text)
    body = normalize(body)
    excerpts: Dict[int, str] = {}
    if not body:
        return excerpts
    for limit in sorted(set(limits)):
        if limit <= 0:
            continue
        excerpt = truncate(body, limit)
        if excerpt:
            excerpts[limit] = excerpt
    return excerpts


def with_excerpts(document: DocumentMetadata, text: str, limits: Iterable[int]) -> DocumentMetadata:
    """Return a copy of `document` carrying excerpts built from `text`."""
    excerpts = {**document.excerpts, **build_excerpts(text, limits)}
    return DocumentPatch(document.id, {"excerpts": excerpts}, reason="excerpts").apply(document)


__all__ = ["ELLIPSIS", "build_excerpts", "normalize", "split_front_matter", "truncate", "with_excerpts"]
