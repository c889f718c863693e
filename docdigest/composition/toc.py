"""Budgeted table-of-contents rendering."""

from __future__ import annotations

import re
from typing import Sequence

from ..models import DocumentMetadata

_HEADING_MARKS = re.compile(r"^#+\s*")


class TableOfContentsBuilder:
    """Builds a `# Table of Contents` block that never exceeds its character limit."""

    HEADER = "# Table of Contents"
    ELLIPSIS_LINE = "- ..."

    def build(self, documents: Sequence[DocumentMetadata], limit: int) -> str:
        if limit <= 0 or not documents:
            return ""
        if len(self.HEADER) >= limit:
            return self.HEADER[:limit]

        text = self.HEADER
        for document in documents:
            line = f"- {self.entry(document)}"
            candidate = f"{text}\n{line}"
            if len(candidate) <= limit:
                text = candidate
                continue
            marker = f"{text}\n{self.ELLIPSIS_LINE}"
            if len(marker) <= limit:
                text = marker
            break
        return text

    @staticmethod
    def entry(document: DocumentMetadata) -> str:
        """First line of the shortest excerpt, falling back to the title."""
        limits = document.excerpt_limits()
        if limits:
            for raw in document.excerpts[limits[0]].splitlines():
                cleaned = _HEADING_MARKS.sub("", raw.strip()).strip()
                if cleaned:
                    return cleaned
        return document.title.strip()


__all__ = ["TableOfContentsBuilder"]
