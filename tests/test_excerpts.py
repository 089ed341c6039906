"""Tests for excerpt assembly from text payloads."""

from tiktorah.services.excerpts import (
    SEGMENT_MARKER,
    Segment,
    collect_segments,
    combine_segments,
    excerpt_from_payload,
    extract_ref,
    find_first_text,
    first_ref_in_schema,
    ranged_ref,
    sanitize_text,
)


class TestSanitize:
    def test_strips_tags_and_whitespace(self) -> None:
        assert sanitize_text("  <b>In the</b>\n beginning  ") == "In the beginning"

    def test_find_first_text_is_depth_first(self) -> None:
        assert find_first_text([["", ["<i>deep</i>"]], "later"]) == "deep"

    def test_find_first_text_none(self) -> None:
        assert find_first_text([["", " "], None]) is None


class TestCollectSegments:
    def test_flat_list_keeps_source_numbering(self) -> None:
        """Blank entries still consume an index."""
        segments = collect_segments(["first", "", "third"])

        assert segments == [Segment(1, "first"), Segment(3, "third")]

    def test_nested_lists_continue_numbering(self) -> None:
        segments = collect_segments([["a", "b"], ["c"]])

        assert [s.index for s in segments] == [1, 2, 3]

    def test_single_string(self) -> None:
        assert collect_segments("<p>only</p>") == [Segment(1, "only")]

    def test_non_text(self) -> None:
        assert collect_segments(None) == []


class TestCombineSegments:
    def test_single_long_segment(self) -> None:
        combined = combine_segments([Segment(1, "x" * 200), Segment(2, "y")])

        assert combined is not None
        assert combined.text == "x" * 200
        assert (combined.first_index, combined.last_index) == (1, 1)

    def test_marks_following_segments(self) -> None:
        combined = combine_segments([Segment(1, "one"), Segment(2, "two")], min_chars=100)

        assert combined is not None
        assert combined.text == f"one {SEGMENT_MARKER}(2){SEGMENT_MARKER} two"
        assert combined.last_index == 2

    def test_stops_at_max_segments(self) -> None:
        segments = [Segment(i, "s") for i in range(1, 10)]

        combined = combine_segments(segments, min_chars=1000, max_segments=3)

        assert combined is not None
        assert combined.last_index == 3

    def test_empty(self) -> None:
        assert combine_segments([]) is None


class TestRefs:
    def test_ranged_verse_ref(self) -> None:
        assert ranged_ref("Genesis 1:1", 1, 3) == "Genesis 1:1-3"

    def test_ranged_verse_ref_offset(self) -> None:
        assert ranged_ref("Genesis 1:4", 1, 2) == "Genesis 1:4-5"

    def test_ranged_chapter_ref(self) -> None:
        assert ranged_ref("Pirkei Avot 5", 1, 2) == "Pirkei Avot 5-6"

    def test_ranged_other_ref(self) -> None:
        assert ranged_ref("Introduction", 1, 4) == "Introduction-4"

    def test_single_segment_keeps_ref(self) -> None:
        assert ranged_ref("Genesis 1:1", 1, 1) == "Genesis 1:1"

    def test_extract_ref_priority(self) -> None:
        payload = {"ref": "Genesis 1", "sectionRef": "Genesis 1", "firstAvailableSectionRef": "X"}

        assert extract_ref(payload) == "X"

    def test_extract_ref_skips_blank(self) -> None:
        assert extract_ref({"sectionRef": " ", "ref": "Genesis 1"}) == "Genesis 1"

    def test_schema_first_section(self) -> None:
        assert first_ref_in_schema({"firstSection": "Zohar 1:1"}, "Zohar") == "Zohar 1:1"

    def test_schema_nested_node(self) -> None:
        schema = {
            "nodes": [
                {
                    "nodeType": "JaggedArrayNode",
                    "depth": 2,
                    "titles": [{"lang": "en", "primary": True, "text": "Introduction"}],
                }
            ]
        }

        assert first_ref_in_schema(schema, "Mesillat Yesharim") == (
            "Mesillat Yesharim, Introduction 1:1"
        )


class TestExcerptFromPayload:
    def test_english_segments(self) -> None:
        payload = {
            "ref": "Genesis 1:1",
            "text": ["In the beginning", "the earth was unformed"],
            "categories": ["Tanakh", "Torah"],
        }

        excerpt = excerpt_from_payload(payload, fallback_ref="Genesis")

        assert excerpt is not None
        assert excerpt.ref == "Genesis 1:1-2"
        assert excerpt.text.startswith("In the beginning")
        assert excerpt.categories == ("Tanakh", "Torah")
        assert excerpt.category == "Tanakh"

    def test_falls_back_to_hebrew(self) -> None:
        payload = {"ref": "Genesis 1:1", "text": [], "he": ["בראשית"]}

        excerpt = excerpt_from_payload(payload, fallback_ref="Genesis")

        assert excerpt is not None
        assert excerpt.text == "בראשית"

    def test_uses_fallback_ref(self) -> None:
        excerpt = excerpt_from_payload({"text": "Some text"}, fallback_ref="Genesis")

        assert excerpt is not None
        assert excerpt.ref == "Genesis"

    def test_no_text(self) -> None:
        assert excerpt_from_payload({"text": [], "he": []}, fallback_ref="Genesis") is None
