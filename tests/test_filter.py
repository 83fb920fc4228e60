"""
Unit tests for course / lab-group filtering.

Rules:
- codes of up to 3 chars match whole words only ("E1" not in "SE10")
- longer codes match ignoring whitespace ("PE 302" == "PE302")
- group tokens must equal the student's group exactly ("G1" != "G12")
- entries without any group token apply to every group
"""

import unittest

from mytimetable.filter import (
    filter_timetable,
    find_group_tokens,
    keep_entry,
    matches_course,
    matches_group,
    normalize_group,
    parse_course_list,
    split_entries,
)
from mytimetable.model import DAYS, TIME_SLOTS, AtomicSlot


class TestInputs(unittest.TestCase):
    def test_parse_course_list(self) -> None:
        self.assertEqual(parse_course_list("pe302, E1 ,, hu302 "), {"PE302", "E1", "HU302"})
        self.assertEqual(parse_course_list(""), set())
        self.assertEqual(parse_course_list(" , "), set())

    def test_normalize_group(self) -> None:
        self.assertEqual(normalize_group(" g 3 "), "G3")
        self.assertEqual(normalize_group(""), "")

    def test_split_entries_accepts_both_separators(self) -> None:
        self.assertEqual(split_entries("A1 x || B2 y||C3 z"), ["A1 x", "B2 y", "C3 z"])
        self.assertEqual(split_entries(" || "), [])


class TestCourseMatch(unittest.TestCase):
    def test_short_code_is_whole_word(self) -> None:
        self.assertTrue(matches_course("E1 L PE308 GET", {"E1"}))
        self.assertFalse(matches_course("E1 L PE308 GET", {"E10"}))
        self.assertFalse(matches_course("E1 L PE308 GET", {"SE1"}))
        self.assertFalse(matches_course("L SE10 PROF.X", {"E1"}))

    def test_long_code_ignores_whitespace(self) -> None:
        self.assertTrue(matches_course("P PE 302 LAB G1", {"PE302"}))
        self.assertTrue(matches_course("l pe302 prof.a", {"PE302"}))
        self.assertTrue(matches_course("L PE302", {"PE 302"}))
        self.assertFalse(matches_course("L PE304", {"PE302"}))

    def test_no_courses_never_match(self) -> None:
        self.assertFalse(matches_course("L PE302", set()))


class TestGroupMatch(unittest.TestCase):
    def test_find_group_tokens(self) -> None:
        self.assertEqual(find_group_tokens("P PE 302 LAB G 1, G2"), ["G1", "G2"])
        self.assertEqual(find_group_tokens("lab p3"), ["P3"])
        self.assertEqual(find_group_tokens("L PE302 PROF.A"), [])

    def test_exact_group_equality(self) -> None:
        self.assertTrue(matches_group("LAB G1, G2", "G1"))
        self.assertFalse(matches_group("LAB G1, G2", "G12"))
        self.assertFalse(matches_group("LAB G12", "G1"))

    def test_no_group_token_applies_to_everyone(self) -> None:
        self.assertTrue(matches_group("L PE302 PROF.A", "G7"))
        self.assertTrue(matches_group("L PE302 PROF.A", ""))

    def test_group_never_rescues_missing_course(self) -> None:
        self.assertFalse(keep_entry("P HU302 LAB G3", {"PE302"}, "G3"))
        self.assertTrue(keep_entry("P PE302 LAB G3", {"PE302"}, "G3"))


class TestFilterTimetable(unittest.TestCase):
    def test_scenario_keeps_only_matching_sub_entry(self) -> None:
        slots = [AtomicSlot("MON", "9-10", "L PE302 PROF.A || L HU302 PROF.B")]
        grid = filter_timetable(slots, "PE302", "G3")
        self.assertEqual(grid["MON"]["9-10"], "L PE302 PROF.A")

    def test_all_cells_present(self) -> None:
        grid = filter_timetable([AtomicSlot("TUE", "8-9", "L PE302")], "PE302", "G1")
        self.assertEqual(sorted(grid.keys()), sorted(DAYS))
        for day in DAYS:
            self.assertEqual(list(grid[day].keys()), TIME_SLOTS)
            for value in grid[day].values():
                self.assertIsInstance(value, str)
        self.assertEqual(sum(1 for d in DAYS for t in TIME_SLOTS if grid[d][t]), 1)

    def test_empty_course_list_gives_empty_grid(self) -> None:
        grid = filter_timetable([AtomicSlot("MON", "8-9", "L PE302")], "", "G1")
        self.assertTrue(all(grid[d][t] == "" for d in DAYS for t in TIME_SLOTS))

    def test_lab_groups(self) -> None:
        slots = [
            AtomicSlot("WED", "2-3", "P PE 302 LAB G1 MUKESH || P PE 302 LAB G3 ANIL"),
            AtomicSlot("WED", "3-4", "P PE 302 LAB G12"),
        ]
        grid = filter_timetable(slots, "PE302", "g1")
        self.assertEqual(grid["WED"]["2-3"], "P PE 302 LAB G1 MUKESH")
        self.assertEqual(grid["WED"]["3-4"], "")

    def test_several_sources_for_one_cell_are_stacked_in_order(self) -> None:
        slots = [
            AtomicSlot("THU", "11-12", "L PE302 PROF.A"),
            AtomicSlot("THU", "11-12", "E1 L PE308 || E2 L PE310"),
        ]
        grid = filter_timetable(slots, "PE302, E2, E1", "G3")
        self.assertEqual(grid["THU"]["11-12"], "L PE302 PROF.A\nE1 L PE308\nE2 L PE310")

    def test_slots_outside_grid_are_ignored(self) -> None:
        grid = filter_timetable([AtomicSlot("SAT", "8-9", "L PE302")], "PE302", "G3")
        self.assertNotIn("SAT", grid)

    def test_same_inputs_same_grid(self) -> None:
        slots = [
            AtomicSlot("MON", "8-9", "E1 L PE308 || L PE308"),
            AtomicSlot("FRI", "5-6", "P PE302 G3"),
        ]
        first = filter_timetable(slots, "E1, PE302", "G3")
        second = filter_timetable(slots, "E1, PE302", "G3")
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
