"""Tests for docdigest.composition.excerpts."""

from __future__ import annotations

import pytest

from docdigest.composition import build_excerpts, split_front_matter, truncate, with_excerpts
from tests._fixtures.documents import make_document

SAMPLE = """---
title: Getting Started
tags: [beginner]
---
# Getting Started



Install the package with pip and create a configuration file.
Then run the first command to check everything works.
"""


def test_split_front_matter_returns_mapping_and_body() -> None:
    meta, body = split_front_matter(SAMPLE)

    assert meta == {"title": "Getting Started", "tags": ["beginner"]}
    assert body.startswith("# Getting Started")


def test_malformed_front_matter_stays_in_body() -> None:
    text = "---\nkey: [unclosed\n---\nbody\n"

    meta, body = split_front_matter(text)

    assert meta == {}
    assert body == text


def test_text_without_front_matter_is_untouched() -> None:
    assert split_front_matter("# Title\nbody") == ({}, "# Title\nbody")


@pytest.mark.parametrize(
    ("text", "limit", "expected"),
    [
        ("short", 10, "short"),
        ("alpha beta gamma delta", 14, "alpha beta..."),
        ("first line\nsecond line words", 20, "first line..."),
        ("abcdefghijklmnop", 10, "abcdefg..."),
        ("abcdef", 2, "ab"),
        ("abcdef", 0, ""),
    ],
)
def test_truncate_prefers_boundaries(text: str, limit: int, expected: str) -> None:
    result = truncate(text, limit)

    assert result == expected
    assert len(result) <= max(limit, 0)


def test_build_excerpts_respects_each_limit() -> None:
    excerpts = build_excerpts(SAMPLE, [60, 0, 10_000, 60])

    assert sorted(excerpts) == [60, 10_000]
    assert len(excerpts[60]) <= 60
    assert excerpts[60].endswith("...")
    assert excerpts[10_000].startswith("# Getting Started\n\nInstall the package")
    assert "\n\n\n" not in excerpts[10_000]
    assert "title:" not in excerpts[10_000]


def test_build_excerpts_of_empty_body() -> None:
    assert build_excerpts("---\ntitle: Empty\n---\n", [100]) == {}


def test_with_excerpts_returns_updated_copy() -> None:
    document = make_document("getting-started", excerpts={20: "Getting Started"})

    updated = with_excerpts(document, SAMPLE, [100, 400])

    assert updated.excerpt_limits() == [20, 100, 400]
    assert updated.excerpts[20] == "Getting Started"
    assert document.excerpt_limits() == [20]
