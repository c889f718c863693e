"""Tests for docdigest.composition.toc."""

from __future__ import annotations

from docdigest.composition import TableOfContentsBuilder
from tests._fixtures.documents import make_document


def test_entry_uses_first_line_of_shortest_excerpt() -> None:
    document = make_document(
        "setup",
        title="Setup",
        excerpts={500: "# Long Heading\nbody", 50: "\n## Installing Things\nbody"},
    )

    assert TableOfContentsBuilder.entry(document) == "Installing Things"


def test_entry_falls_back_to_title() -> None:
    assert TableOfContentsBuilder.entry(make_document("setup", title=" Setup Guide ")) == "Setup Guide"


def test_build_lists_all_entries_when_they_fit() -> None:
    documents = [make_document("install", title="Install"), make_document("deploy", title="Deploy")]

    toc = TableOfContentsBuilder().build(documents, 100)

    assert toc == "# Table of Contents\n- Install\n- Deploy"


def test_build_marks_omitted_entries() -> None:
    documents = [make_document("install", title="Install"), make_document("deploy", title="Deploy")]

    toc = TableOfContentsBuilder().build(documents, 35)

    assert toc == "# Table of Contents\n- Install\n- ..."
    assert len(toc) <= 35


def test_build_drops_marker_when_it_cannot_fit() -> None:
    documents = [make_document("getting-started", title="Getting Started")]

    assert TableOfContentsBuilder().build(documents, 22) == "# Table of Contents"


def test_build_truncates_header_for_tiny_limits() -> None:
    documents = [make_document("install")]
    builder = TableOfContentsBuilder()

    assert builder.build(documents, 5) == "# Tab"
    assert builder.build(documents, 0) == ""
    assert builder.build([], 100) == ""
