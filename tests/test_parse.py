"""
Unit tests for the raw extraction parser.

Parser contract:
- decoded records and text answers both end up as AtomicSlots
- one broken JSON chunk is skipped, the others survive
- "DAY: / TIME:" text is parsed when there is no JSON at all
- unusable input gives an empty list, never an exception
"""

import unittest

from mytimetable.model import AtomicSlot
from mytimetable.parse import (
    FreeTextPayload,
    StructuredPayload,
    clean_json_string,
    decode_payload,
    normalize_day,
    normalize_time,
    parse_many,
    parse_raw,
    parse_text_blocks,
)


class TestNormalize(unittest.TestCase):
    def test_day_names(self) -> None:
        self.assertEqual(normalize_day("mon"), "MON")
        self.assertEqual(normalize_day("Thursday"), "THU")
        self.assertEqual(normalize_day("THURS"), "THU")
        self.assertIsNone(normalize_day("monitor"))
        self.assertIsNone(normalize_day("SAT"))
        self.assertIsNone(normalize_day(None))

    def test_time_labels(self) -> None:
        self.assertEqual(normalize_time("8-9"), "8-9")
        self.assertEqual(normalize_time(" 10 - 11 "), "10-11")
        self.assertEqual(normalize_time("08:00-09:00"), "8-9")
        self.assertEqual(normalize_time("13-14"), "1-2")
        self.assertEqual(normalize_time("12–1"), "12-1")
        self.assertIsNone(normalize_time("7-8"))
        self.assertIsNone(normalize_time("morning"))


class TestPayloads(unittest.TestCase):
    def test_decode_payload_shapes(self) -> None:
        self.assertIsInstance(decode_payload([{"day": "MON"}]), StructuredPayload)
        self.assertIsInstance(decode_payload({"day": "MON"}), StructuredPayload)
        self.assertIsInstance(decode_payload("text"), FreeTextPayload)
        self.assertEqual(decode_payload(b"abc"), FreeTextPayload(text="abc"))
        self.assertEqual(decode_payload(None), FreeTextPayload(text=""))

    def test_clean_json_string_strips_fences(self) -> None:
        self.assertEqual(clean_json_string('```json\n[1, 2]\n```'), "[1, 2]")
        self.assertEqual(clean_json_string("```\n[]\n```"), "[]")
        self.assertEqual(clean_json_string("  [] "), "[]")


class TestStructuredMode(unittest.TestCase):
    def test_records_are_normalized(self) -> None:
        slots = parse_raw([{"day": "mon", "time": "9-10", "raw_content": " L PE302 "}])
        self.assertEqual(slots, [AtomicSlot(day="MON", time="9-10", raw_content="L PE302")])

    def test_duplicates_are_kept(self) -> None:
        records = [
            {"day": "MON", "time": "8-9", "raw_content": "E1 L PE308"},
            {"day": "MON", "time": "8-9", "raw_content": "L HU302"},
        ]
        self.assertEqual(len(parse_raw(records)), 2)

    def test_unknown_day_or_time_is_skipped(self) -> None:
        records = [
            {"day": "SAT", "time": "8-9", "raw_content": "X1"},
            {"day": "MON", "time": "6-7", "raw_content": "X2"},
            {"day": "TUE", "time": "8-9", "raw_content": "X3"},
        ]
        with self.assertLogs("mytimetable.parse", level="WARNING"):
            slots = parse_raw(records)
        self.assertEqual([s.raw_content for s in slots], ["X3"])

    def test_empty_content_and_non_objects_are_ignored(self) -> None:
        records = [
            {"day": "MON", "time": "8-9", "raw_content": ""},
            {"day": "MON", "time": "9-10", "raw_content": "EMPTY"},
            "MON 10-11",
            42,
        ]
        self.assertEqual(parse_raw(records), [])

    def test_camel_case_key_is_accepted(self) -> None:
        slots = parse_raw([{"day": "FRI", "time": "5-6", "rawContent": "L X"}])
        self.assertEqual(slots[0].raw_content, "L X")


class TestFreeTextMode(unittest.TestCase):
    def test_fenced_json_array(self) -> None:
        text = '```json\n[{"day": "TUE", "time": "10-11", "raw_content": "L PE304"}]\n```'
        self.assertEqual(parse_raw(text), [AtomicSlot("TUE", "10-11", "L PE304")])

    def test_single_object_is_wrapped(self) -> None:
        text = '{"day": "FRI", "time": "5-6", "raw_content": "L HU302"}'
        self.assertEqual(parse_raw(text), [AtomicSlot("FRI", "5-6", "L HU302")])

    def test_nested_arrays_per_day(self) -> None:
        text = (
            '[[{"day": "MON", "time": "8-9", "raw_content": "A1"}],'
            ' [{"day": "TUE", "time": "8-9", "raw_content": "B1"}]]'
        )
        self.assertEqual([s.day for s in parse_raw(text)], ["MON", "TUE"])

    def test_array_wrapped_in_an_object(self) -> None:
        text = '{"timetable": [{"day": "MON", "time": "8-9", "raw_content": "L PE302"}]}'
        self.assertEqual(parse_raw(text), [AtomicSlot("MON", "8-9", "L PE302")])

    def test_bracketed_note_in_plain_text_uses_line_fallback(self) -> None:
        text = "DAY: MON\n8-9: L PE302 ROOM [101]\n9-10: L HU302"
        self.assertEqual(
            parse_raw(text),
            [AtomicSlot("MON", "8-9", "L PE302 ROOM [101]"), AtomicSlot("MON", "9-10", "L HU302")],
        )

    def test_broken_chunk_does_not_drop_the_others(self) -> None:
        text = (
            "Monday:\n"
            '[{"day": "MON", "time": "8-9", "raw_content": "E1 L PE308"}]\n'
            "Tuesday:\n"
            '[{"day": "TUE", "time": "8-9", broken]\n'
            "Wednesday:\n"
            '[{"day": "WED", "time": "2-3", "raw_content": "P PE 302 LAB G1 [room 5]"}]\n'
        )
        with self.assertLogs("mytimetable.parse", level="WARNING"):
            slots = parse_raw(text)

        self.assertEqual(
            slots,
            [
                AtomicSlot("MON", "8-9", "E1 L PE308"),
                AtomicSlot("WED", "2-3", "P PE 302 LAB G1 [room 5]"),
            ],
        )

    def test_line_oriented_fallback(self) -> None:
        text = "\n".join(
            [
                "DAY: MON",
                "8-9: E1 L PE308 GET PROF.NAVEEN",
                "L PE308 GET PROF.ANIL",
                "9-10: EMPTY",
                "TIME: 10-11",
                "P PE 302 LAB G1",
                "DAY: TUE",
                "11-12:",
                "EMPTY",
                "12-1: L HU302",
            ]
        )
        self.assertEqual(
            parse_raw(text),
            [
                AtomicSlot("MON", "8-9", "E1 L PE308 GET PROF.NAVEEN || L PE308 GET PROF.ANIL"),
                AtomicSlot("MON", "10-11", "P PE 302 LAB G1"),
                AtomicSlot("TUE", "12-1", "L HU302"),
            ],
        )

    def test_bare_day_marker_with_inline_time(self) -> None:
        text = "Wednesday:\n2-3: P PE302 G2\nFRI: 4-5: L HU302"
        self.assertEqual(
            parse_text_blocks(text),
            [AtomicSlot("WED", "2-3", "P PE302 G2"), AtomicSlot("FRI", "4-5", "L HU302")],
        )

    def test_content_before_any_marker_is_ignored(self) -> None:
        text = "Here is your timetable:\nL PE302\nDAY: MON\n8-9: L PE302"
        self.assertEqual(parse_raw(text), [AtomicSlot("MON", "8-9", "L PE302")])

    def test_no_structure_returns_empty(self) -> None:
        self.assertEqual(parse_raw("Sorry, I could not read the image."), [])
        self.assertEqual(parse_raw(""), [])
        self.assertEqual(parse_raw(None), [])


class TestParseMany(unittest.TestCase):
    def test_results_accumulate_in_order(self) -> None:
        slots = parse_many(
            [
                '[{"day": "MON", "time": "8-9", "raw_content": "A1"}]',
                "garbage",
                [{"day": "TUE", "time": "9-10", "raw_content": "B1"}],
            ]
        )
        self.assertEqual([s.raw_content for s in slots], ["A1", "B1"])


if __name__ == "__main__":
    unittest.main()
