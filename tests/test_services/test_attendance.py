"""Tests for the attendance sheet scanning functions."""

from __future__ import annotations

import pytest

from attendance_report.services.attendance import (
    DEFAULT_LAYOUT,
    CellClassification,
    Employee,
    SheetLayout,
    build_daily,
    classify,
    employee_details,
    extract_ot,
    find_attendance_sheet,
    find_employee_row,
    is_ignored_row,
    list_employees,
    normalize_for_compare,
    parse_number,
    summarize,
)
from attendance_report.utils.exceptions import (
    EmployeeNotFoundError,
    SheetNotFoundError,
)
from attendance_report.workbook import EMPTY_CELL, Cell, Sheet, Workbook
from tests.fixtures import build_sheet, employee_row


class TestClassify:
    """Tests for single cell classification."""

    @pytest.mark.parametrize("code", ["P", "PR", "PRESENT", "P/ANYTHING", "P/HD"])
    def test_present_codes(self, code: str) -> None:
        assert classify(code) == CellClassification(present=1)

    @pytest.mark.parametrize("code", ["A", "ABSENT"])
    def test_absent_codes(self, code: str) -> None:
        assert classify(code) == CellClassification(absent=1)

    @pytest.mark.parametrize("code", ["WO", "W/O", "WEEKOFF", "WEEK OFF"])
    def test_weekoff_codes(self, code: str) -> None:
        assert classify(code) == CellClassification(weekoff=1)

    def test_input_is_trimmed_and_upper_cased(self) -> None:
        assert classify("  p ").present == 1
        assert classify("week off").weekoff == 1
        assert classify("\tabsent\n").absent == 1

    @pytest.mark.parametrize("raw", ["", "   ", None, EMPTY_CELL])
    def test_empty_values_are_all_zero(self, raw: object) -> None:
        assert classify(raw) == CellClassification()  # type: ignore[arg-type]

    def test_overtime_only_cell(self) -> None:
        assert classify("OT2.5") == CellClassification(ot=2.5)

    def test_overtime_without_number_is_zero(self) -> None:
        assert classify("OT") == CellClassification(ot=0.0)

    def test_overtime_allows_space_before_number(self) -> None:
        assert classify("ot 3").ot == 3.0

    def test_present_with_overtime_in_same_cell_is_not_present(self) -> None:
        """Status codes match the whole cell; "P OT2" only contributes OT."""
        result = classify("P OT2")
        assert result == CellClassification(present=0, absent=0, weekoff=0, ot=2.0)

    def test_present_prefix_keeps_overtime(self) -> None:
        assert classify("P/OT4") == CellClassification(present=1, ot=4.0)

    @pytest.mark.parametrize("code", ["L", "CL", "HOLIDAY", "PA", "AB", "WOFF", "?"])
    def test_unrecognized_codes_are_neither(self, code: str) -> None:
        assert classify(code) == CellClassification()

    def test_numeric_cells_are_classified_as_text(self) -> None:
        assert classify(8) == CellClassification()
        assert classify(Cell.number_cell(1)) == CellClassification()

    def test_extract_ot_reads_first_occurrence(self) -> None:
        assert extract_ot("OT1.5 OT3") == 1.5
        assert extract_ot("P") == 0.0


class TestParseNumber:
    """Tests for the total-column number parsing."""

    def test_number_cell(self) -> None:
        assert parse_number(Cell.number_cell(3)) == 3.0

    def test_numeric_text(self) -> None:
        assert parse_number(Cell.text_cell(" 4.5 ")) == 4.5

    def test_leading_number_in_text(self) -> None:
        assert parse_number(Cell.text_cell("3 days")) == 3.0

    @pytest.mark.parametrize("text", ["", "-", "N/A", "Infinity", "days 3"])
    def test_non_numeric_text_is_none(self, text: str) -> None:
        assert parse_number(Cell.text_cell(text)) is None

    def test_empty_cell_is_none(self) -> None:
        assert parse_number(EMPTY_CELL) is None


class TestFindAttendanceSheet:
    """Tests for locating the "present" sheet."""

    def test_first_matching_sheet_wins(self) -> None:
        workbook = Workbook(
            sheets=[
                Sheet(name="Summary"),
                Sheet(name=" Presant Feb "),
                Sheet(name="PRESENT"),
            ]
        )
        assert find_attendance_sheet(workbook).name == " Presant Feb "

    def test_match_is_case_insensitive_substring(self) -> None:
        workbook = Workbook(sheets=[Sheet(name="Jan-PRESENT-2024")])
        assert find_attendance_sheet(workbook).name == "Jan-PRESENT-2024"

    def test_missing_sheet_raises_with_names(self) -> None:
        workbook = Workbook(sheets=[Sheet(name="Attendance"), Sheet(name="OT")])
        with pytest.raises(SheetNotFoundError) as exc_info:
            find_attendance_sheet(workbook)
        assert exc_info.value.sheet_names == ["Attendance", "OT"]
        assert exc_info.value.http_status == 400


class TestIgnoredRows:
    """Tests for the header and blank-marker row rule."""

    @pytest.mark.parametrize("marker", ["No", "no.", "NO.", " No. ", "."])
    def test_marker_in_either_column_is_ignored(self, marker: str) -> None:
        assert is_ignored_row(marker, "John") is True
        assert is_ignored_row("007", marker) is True

    def test_both_blank_is_ignored(self) -> None:
        assert is_ignored_row("", "") is True

    def test_blank_name_with_number_is_kept(self) -> None:
        assert is_ignored_row("55", "") is False

    def test_name_without_number_is_ignored(self) -> None:
        assert is_ignored_row("", "ATTENDANCE REGISTER JANUARY") is True
        assert is_ignored_row("  ", "John Doe") is True

    def test_words_starting_with_no_are_kept(self) -> None:
        assert is_ignored_row("007", "Noel") is False
        assert is_ignored_row("No.1", "Noel") is False


class TestListEmployees:
    """Tests for the employee directory scan."""

    def test_lists_employees_in_sheet_order(self, month_sheet: Sheet) -> None:
        assert list_employees(month_sheet) == [
            Employee(number="007", name="John Doe"),
            Employee(number="101", name="Asha  K. Rao"),
            Employee(number="102", name="Ravi Kumar"),
        ]

    def test_duplicate_numbers_keep_first_occurrence(self) -> None:
        sheet = build_sheet(
            {
                0: employee_row("7", "First"),
                1: employee_row(" 7 ", "Second"),
            }
        )
        assert list_employees(sheet) == [Employee(number="7", name="First")]

    def test_title_and_banner_rows_are_not_employees(self) -> None:
        sheet = build_sheet(
            {
                0: {2: "ATTENDANCE REGISTER JANUARY"},
                1: employee_row("No.", "Name"),
                2: employee_row("007", "John Doe"),
                3: employee_row(None, "KITCHEN STAFF"),
            }
        )
        assert list_employees(sheet) == [Employee(number="007", name="John Doe")]

    def test_key_falls_back_to_name(self) -> None:
        assert Employee(number="", name="Guest  Worker").key == "GUEST WORKER"

    def test_row_with_blank_name_is_included(self) -> None:
        sheet = build_sheet({0: employee_row("55", None)})
        assert list_employees(sheet) == [Employee(number="55", name="")]

    def test_header_and_dot_rows_are_skipped(self) -> None:
        sheet = build_sheet(
            {
                0: employee_row("No.", "Name"),
                1: employee_row(".", "Someone"),
                2: employee_row("9", "."),
                3: employee_row("10", "Real Person"),
            }
        )
        assert list_employees(sheet) == [Employee(number="10", name="Real Person")]

    def test_numeric_number_cells_render_without_decimal(self) -> None:
        sheet = build_sheet({0: employee_row(102, "Ravi"), 1: employee_row(2.5, "X")})
        assert [e.number for e in list_employees(sheet)] == ["102", "2.5"]

    def test_empty_sheet_has_no_employees(self) -> None:
        assert list_employees(Sheet(name="PRESENT")) == []


class TestFindEmployeeRow:
    """Tests for resolving a query to a sheet row."""

    def test_match_by_number(self, month_sheet: Sheet) -> None:
        match = find_employee_row(month_sheet, number="101")
        assert match.row == 2
        assert match.employee == Employee(number="101", name="Asha  K. Rao")

    def test_first_match_wins_over_later_duplicates(self, month_sheet: Sheet) -> None:
        match = find_employee_row(month_sheet, number="007")
        assert match.row == 1
        assert match.employee.name == "John Doe"

    def test_padded_cell_matches(self) -> None:
        sheet = build_sheet({0: employee_row(" 007 ", "John")})
        assert find_employee_row(sheet, number="007").row == 0

    def test_number_is_compared_as_text(self) -> None:
        sheet = build_sheet({0: employee_row("0007", "John")})
        with pytest.raises(EmployeeNotFoundError):
            find_employee_row(sheet, number="007")

    def test_numeric_cell_matches_text_query(self, month_sheet: Sheet) -> None:
        assert find_employee_row(month_sheet, number="102").row == 4

    def test_name_ignores_periods_spacing_and_case(self, month_sheet: Sheet) -> None:
        match = find_employee_row(month_sheet, name="asha k rao")
        assert match.row == 2

    def test_either_field_may_match(self, month_sheet: Sheet) -> None:
        match = find_employee_row(month_sheet, number="999", name="Ravi Kumar")
        assert match.row == 4

    def test_earliest_row_matching_either_field_wins(self, month_sheet: Sheet) -> None:
        match = find_employee_row(month_sheet, number="102", name="John Doe")
        assert match.row == 1

    def test_skipped_rows_never_match(self) -> None:
        sheet = build_sheet(
            {0: employee_row("No.", "Name"), 1: employee_row("5", "Name")}
        )
        assert find_employee_row(sheet, name="Name").row == 1

    def test_title_row_without_number_never_matches(self) -> None:
        sheet = build_sheet(
            {0: {2: "ATTENDANCE REGISTER"}, 1: employee_row("5", "Ravi")}
        )
        with pytest.raises(EmployeeNotFoundError):
            find_employee_row(sheet, name="attendance register")

    def test_not_found_raises(self, month_sheet: Sheet) -> None:
        with pytest.raises(EmployeeNotFoundError) as exc_info:
            find_employee_row(month_sheet, number="404", name="Nobody")
        assert exc_info.value.http_status == 404
        assert exc_info.value.details == {"number": "404", "name": "Nobody"}

    def test_no_query_raises_not_found(self, month_sheet: Sheet) -> None:
        with pytest.raises(EmployeeNotFoundError):
            find_employee_row(month_sheet)

    def test_normalize_for_compare(self) -> None:
        assert normalize_for_compare("  a.b   c. ") == "AB C"


class TestSummarize:
    """Tests for the monthly aggregate of one row."""

    def test_counts_day_codes(self, month_sheet: Sheet) -> None:
        summary = summarize(month_sheet, 1)
        assert (summary.present, summary.absent, summary.weekoff) == (1, 1, 1)
        assert summary.ot_hours == 0
        assert summary.atd is None
        assert summary.minus is None
        assert summary.kitchen is None

    def test_total_columns_replace_day_counts(self, month_sheet: Sheet) -> None:
        summary = summarize(month_sheet, 2)
        assert summary.present == 2
        assert summary.absent == 0
        assert summary.weekoff == 3
        assert summary.ot_hours == 4.5
        assert (summary.atd, summary.minus, summary.kitchen) == (26, 1, 2)

    def test_weekoff_override_from_text(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", "WO", "WO", weekoff_total="3")})
        assert summarize(sheet, 0).weekoff == 3

    def test_non_numeric_totals_fall_back_to_day_scan(self) -> None:
        sheet = build_sheet(
            {0: employee_row("1", "X", "WO", "OT1.5", weekoff_total="-", ot_total="")}
        )
        summary = summarize(sheet, 0)
        assert summary.weekoff == 1
        assert summary.ot_hours == 1.5

    def test_boolean_totals_fall_back_to_day_scan(self) -> None:
        sheet = build_sheet(
            {0: employee_row("1", "X", "WO", "OT2", weekoff_total=True, ot_total=True)}
        )
        summary = summarize(sheet, 0)
        assert summary.weekoff == 1
        assert summary.ot_hours == 2

    def test_zero_total_still_overrides(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", "WO", "WO", weekoff_total=0)})
        assert summarize(sheet, 0).weekoff == 0

    def test_overtime_accumulates_across_days(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", "OT2", "P/OT1.5", "ot", "A")})
        summary = summarize(sheet, 0)
        assert summary.ot_hours == 3.5
        assert summary.present == 1
        assert summary.absent == 1

    def test_scans_at_most_31_day_columns(self) -> None:
        days = ["P"] * 35
        sheet = build_sheet({0: employee_row("1", "X", *days)})
        assert summarize(sheet, 0).present == 31

    def test_window_stops_at_used_range(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", "P", "P")})
        assert sheet.max_col == 4
        assert summarize(sheet, 0).present == 2

    def test_custom_layout(self) -> None:
        layout = SheetLayout(first_day_col=4, last_day_col=5, weekoff_total_col=9)
        sheet = build_sheet({0: {1: "1", 2: "X", 3: "P", 4: "P", 5: "A", 6: "P"}})
        summary = summarize(sheet, 0, layout)
        assert (summary.present, summary.absent) == (1, 1)

    def test_presence_and_absence_never_exceed_days(self, month_sheet: Sheet) -> None:
        days = len(DEFAULT_LAYOUT.day_columns(month_sheet))
        for row in (1, 2, 4):
            summary = summarize(month_sheet, row)
            assert summary.present + summary.absent <= days


class TestBuildDaily:
    """Tests for the per-day calendar view."""

    def test_one_entry_per_day_column(self, month_sheet: Sheet) -> None:
        days = build_daily(month_sheet, 1)
        assert len(days) == 31
        assert [d.day for d in days] == list(range(1, 32))

    def test_codes_are_normalized_not_classified(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", " p ", "ot2.5", None, "CL")})
        days = build_daily(sheet, 0)
        assert [(d.day, d.code, d.ot) for d in days] == [
            (1, "P", 0.0),
            (2, "OT2.5", 2.5),
            (3, "", 0.0),
            (4, "CL", 0.0),
        ]

    def test_daily_overtime_matches_summary_without_override(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", "OT2", "P", "OT 1.25", "WO")})
        days = build_daily(sheet, 0)
        assert sum(d.ot for d in days) == summarize(sheet, 0).ot_hours

    def test_numeric_day_cells_render_as_text(self) -> None:
        sheet = build_sheet({0: employee_row("1", "X", 8, 7.5)})
        assert [d.code for d in build_daily(sheet, 0)] == ["8", "7.5"]


class TestEmployeeDetails:
    """Tests for contact details beside the grid."""

    def test_reads_detail_columns(self, month_sheet: Sheet) -> None:
        details = employee_details(month_sheet, 2)
        assert details.mobile1 == "9876543210"
        assert details.mobile2 is None
        assert details.present_address == "12 Market Road"

    def test_blank_and_marker_cells_are_omitted(self) -> None:
        sheet = build_sheet(
            {0: employee_row("1", "X", mobile1=".", mobile2="  ", present_address="")}
        )
        details = employee_details(sheet, 0)
        assert details.mobile1 is None
        assert details.mobile2 is None
        assert details.present_address is None
