"""
Excerpt assembly from raw text payloads.

Text payloads nest segments in arrays of arbitrary depth, mixing English
and Hebrew and carrying inline HTML. These helpers turn a payload into a
single readable excerpt of roughly three lines.

All functions are pure: no I/O, same input → same output.
"""

import re
from dataclasses import dataclass
from typing import Any

from tiktorah.config import MAX_EXCERPT_SEGMENTS, MIN_EXCERPT_CHARS
from tiktorah.models.card import Excerpt

# Zero-width space + bullet; the renderer styles text between two markers
SEGMENT_MARKER = "\u200b\u2022"

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")

# "Genesis 1:1" → prefix "Genesis 1", verse "1"
_VERSE_REF_PATTERN = re.compile(r"^(.+):(\d+)$")
# "Pirkei Avot 5" → prefix "Pirkei Avot ", number "5"
_NUMBERED_REF_PATTERN = re.compile(r"^(.+\s)(\d+)$")

_REF_FIELDS = ("firstAvailableSectionRef", "firstAvailableRef", "sectionRef", "ref", "heRef")


@dataclass(frozen=True, slots=True)
class Segment:
    """One text segment with its 1-based position in the section."""

    index: int
    text: str


@dataclass(frozen=True, slots=True)
class CombinedText:
    text: str
    first_index: int
    last_index: int


def sanitize_text(value: str) -> str:
    """Strip HTML tags and collapse whitespace."""
    return _WHITESPACE_PATTERN.sub(" ", _TAG_PATTERN.sub("", value)).strip()


def find_first_text(value: Any) -> str | None:
    """First non-blank string found depth-first, sanitized."""
    if isinstance(value, str):
        cleaned = sanitize_text(value)
        return cleaned or None
    if isinstance(value, list):
        for entry in value:
            found = find_first_text(entry)
            if found:
                return found
    return None


def collect_segments(value: Any, start_index: int = 1) -> list[Segment]:
    """
    Flatten a nested text payload into numbered segments.

    Blank strings still consume an index so numbering matches the source.
    Nested arrays continue numbering after their last collected segment.
    """
    if isinstance(value, str):
        cleaned = sanitize_text(value)
        return [Segment(start_index, cleaned)] if cleaned else []

    segments: list[Segment] = []
    if not isinstance(value, list):
        return segments

    current = start_index
    for entry in value:
        if isinstance(entry, str):
            cleaned = sanitize_text(entry)
            if cleaned:
                segments.append(Segment(current, cleaned))
            current += 1
        elif isinstance(entry, list):
            nested = collect_segments(entry, current)
            segments.extend(nested)
            if nested:
                current = nested[-1].index + 1
    return segments


def combine_segments(
    segments: list[Segment],
    min_chars: int = MIN_EXCERPT_CHARS,
    max_segments: int = MAX_EXCERPT_SEGMENTS,
) -> CombinedText | None:
    """
    Merge leading segments until the text is long enough.

    Stops once the combined length reaches min_chars or max_segments
    have been used. Every segment after the first is prefixed with a
    numbered marker: "first text <m>(2)<m> second text".
    """
    used: list[Segment] = []
    total = 0
    for segment in segments:
        if len(used) >= max_segments:
            break
        used.append(segment)
        total += len(segment.text)
        if total >= min_chars:
            break

    if not used:
        return None

    first, last = used[0].index, used[-1].index
    if len(used) == 1:
        return CombinedText(used[0].text, first, last)

    parts = [used[0].text]
    for segment in used[1:]:
        parts.append(f"{SEGMENT_MARKER}({segment.index}){SEGMENT_MARKER} {segment.text}")
    return CombinedText(" ".join(parts), first, last)


def ranged_ref(base_ref: str, first_index: int, last_index: int) -> str:
    """
    Widen a reference to cover the segments actually used.

    "Genesis 1:1" with segments 1..3 → "Genesis 1:1-3"
    "Pirkei Avot 5" with segments 1..2 → "Pirkei Avot 5-6"
    """
    if first_index == last_index:
        return base_ref

    span = last_index - first_index

    match = _VERSE_REF_PATTERN.match(base_ref)
    if match:
        prefix, verse = match.groups()
        first_verse = int(verse)
        return f"{prefix}:{first_verse}-{first_verse + span}"

    match = _NUMBERED_REF_PATTERN.match(base_ref)
    if match:
        prefix, number = match.groups()
        first_number = int(number)
        return f"{prefix}{first_number}-{first_number + span}"

    return f"{base_ref}-{last_index}"


def extract_ref(payload: dict[str, Any]) -> str | None:
    """Best available reference string in a text payload."""
    for name in _REF_FIELDS:
        ref = payload.get(name)
        if isinstance(ref, str) and ref.strip():
            return ref
    return None


def first_ref_in_schema(schema: dict[str, Any], base_title: str) -> str | None:
    """
    Find a readable starting reference in a complex book's schema.

    Complex books reject book-level references; their first leaf node
    gives a section that can be fetched instead.
    """
    first_section = schema.get("firstSection")
    if isinstance(first_section, str):
        return first_section

    if schema.get("nodeType") == "JaggedArrayNode" or schema.get("depth"):
        titles = schema.get("titles") or []
        en_title = next(
            (
                t.get("text")
                for t in titles
                if isinstance(t, dict) and t.get("lang") == "en" and t.get("primary")
            ),
            None,
        )
        if en_title and en_title != base_title:
            return f"{base_title}, {en_title} 1:1"
        return f"{base_title} 1:1"

    nodes = schema.get("nodes")
    if isinstance(nodes, list):
        for node in nodes:
            if isinstance(node, dict):
                found = first_ref_in_schema(node, base_title)
                if found:
                    return found

    return None


def excerpt_from_payload(payload: dict[str, Any], fallback_ref: str) -> Excerpt | None:
    """
    Build an excerpt from a text payload.

    Tries English segments, then Hebrew, then any single text.
    Returns None when the payload holds no readable text.
    """
    base_ref = extract_ref(payload) or fallback_ref
    raw_categories = payload.get("categories")
    if not isinstance(raw_categories, list):
        raw_categories = []
    categories = tuple(c for c in raw_categories if isinstance(c, str))
    category = categories[0] if categories else None

    combined = combine_segments(collect_segments(payload.get("text")))
    if combined is None:
        combined = combine_segments(collect_segments(payload.get("he")))

    if combined is None:
        text = find_first_text(payload.get("text")) or find_first_text(payload.get("he"))
        if not text:
            return None
        return Excerpt(ref=base_ref, text=text, categories=categories, category=category)

    return Excerpt(
        ref=ranged_ref(base_ref, combined.first_index, combined.last_index),
        text=combined.text,
        categories=categories,
        category=category,
    )
