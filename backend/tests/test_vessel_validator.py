"""Tests for vessel draft validation.

Covers the voyage number format, required fields, numeric ranges,
ETA/ETD ordering, error accumulation order and reference-data checks.
"""
import logging
import random

import pytest

from berthboard.modules.vessel_validator import (
    VOYAGE_FORMAT_MESSAGE,
    generate_voyage_number,
    is_valid_voyage_number,
    to_positive_float,
    validate_vessel,
)
from berthboard.utils.dates import utcnow
from conftest import NOW, at


class TestVoyageNumberFormat:
    @pytest.mark.parametrize("value", ["2024-001-E", "1999-999-W", "2030-000-N", "2025-123-S"])
    def test_valid(self, value):
        assert is_valid_voyage_number(value)

    @pytest.mark.parametrize("value", [
        "2024-001-e",   # lowercase direction
        "2024-01-E",    # short sequence
        "24-001-E",     # short year
        "2024-001-X",   # unknown direction
        "2024001E",     # no separators
        " 2024-001-E",  # leading space
        "2024-001-E ",  # trailing space
        "2024-001-E\n",  # trailing newline
        "\uff12\uff10\uff12\uff14-\uff10\uff10\uff11-E",  # full-width digits
        "\u0662\u0660\u0662\u0664-\u0660\u0660\u0661-W",  # Arabic-Indic digits
        "",
    ])
    def test_invalid(self, value):
        assert not is_valid_voyage_number(value)

    def test_non_string_is_invalid(self):
        assert not is_valid_voyage_number(2024001)
        assert not is_valid_voyage_number(None)

    def test_non_ascii_digits_fail_draft_validation(self, make_draft):
        result = validate_vessel(make_draft(voyage_number="\uff12\uff10\uff12\uff15-\uff10\uff10\uff11-E"), [], now=NOW)
        assert result.errors == [VOYAGE_FORMAT_MESSAGE]


class TestGenerateVoyageNumber:
    def test_format_and_year(self):
        number = generate_voyage_number(2025, rng=random.Random(7))
        assert is_valid_voyage_number(number)
        assert number.startswith("2025-")

    def test_defaults_to_current_year(self):
        assert generate_voyage_number().startswith(f"{utcnow().year}-")

    def test_avoids_taken_numbers(self):
        taken = {f"2025-{seq:03d}-{d}" for seq in range(1, 1000) for d in "EWNS"} - {"2025-500-S"}
        assert generate_voyage_number(2025, taken=taken, rng=random.Random(1)) == "2025-500-S"

    def test_exhausted_year(self):
        taken = {f"2025-{seq:03d}-{d}" for seq in range(1, 1000) for d in "EWNS"}
        with pytest.raises(ValueError, match="No voyage numbers left"):
            generate_voyage_number(2025, taken=taken)

    @pytest.mark.parametrize("year", [99, 10000])
    def test_year_must_have_four_digits(self, year):
        with pytest.raises(ValueError):
            generate_voyage_number(year)


class TestToPositiveFloat:
    @pytest.mark.parametrize("value,expected", [(12, 12.0), ("7.5", 7.5), (0.1, 0.1)])
    def test_positive_numbers(self, value, expected):
        assert to_positive_float(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "-3", "abc", "", None, float("nan"), float("inf"), True])
    def test_rejected(self, value):
        assert to_positive_float(value) is None


class TestValidateVessel:
    def test_valid_draft(self, make_draft):
        result = validate_vessel(make_draft(), [], now=NOW)
        assert result.is_valid
        assert result.errors == []

    def test_empty_draft_reports_every_required_field_in_order(self):
        result = validate_vessel({}, [], now=NOW)
        assert not result.is_valid
        assert result.errors == [
            "Voyage number is required",
            "Vessel name is required",
            "ETA is required",
            "ETD is required",
            "Terminal selection is required",
            "Vessel type is required",
            "LOA must be a positive number",
            "Draft must be a positive number",
        ]

    def test_whitespace_only_fields_count_as_missing(self, make_draft):
        result = validate_vessel(make_draft(vessel_name="   ", terminal_id=" "), [], now=NOW)
        assert "Vessel name is required" in result.errors
        assert "Terminal selection is required" in result.errors

    def test_bad_voyage_format(self, make_draft):
        result = validate_vessel(make_draft(voyage_number="2024-1-E"), [], now=NOW)
        assert result.errors == [VOYAGE_FORMAT_MESSAGE]

    def test_duplicate_voyage_number(self, make_draft, make_vessel):
        existing = [make_vessel(voyage_number="2025-001-E")]
        result = validate_vessel(make_draft(voyage_number="2025-001-E"), existing, now=NOW)
        assert result.errors == ["Voyage number already exists"]

    def test_update_may_keep_its_own_voyage_number(self, make_draft, make_vessel):
        existing = [make_vessel(voyage_number="2025-001-E")]
        result = validate_vessel(
            make_draft(voyage_number="2025-001-E"), existing,
            is_update=True, exclude_voyage_number="2025-001-E", now=NOW,
        )
        assert result.is_valid

    def test_update_cannot_take_another_vessels_number(self, make_draft, make_vessel):
        existing = [make_vessel(voyage_number="2025-001-E"), make_vessel(voyage_number="2025-002-W")]
        result = validate_vessel(
            make_draft(voyage_number="2025-002-W"), existing,
            is_update=True, exclude_voyage_number="2025-001-E", now=NOW,
        )
        assert result.errors == ["Voyage number already exists"]

    def test_exclusion_ignored_on_create(self, make_draft, make_vessel):
        existing = [make_vessel(voyage_number="2025-001-E")]
        result = validate_vessel(
            make_draft(voyage_number="2025-001-E"), existing,
            is_update=False, exclude_voyage_number="2025-001-E", now=NOW,
        )
        assert not result.is_valid

    def test_unparseable_dates(self, make_draft):
        result = validate_vessel(make_draft(eta="next tuesday", etd="soon"), [], now=NOW)
        assert result.errors == ["ETA must be a valid date/time", "ETD must be a valid date/time"]

    def test_eta_equal_to_etd_is_rejected(self, make_draft):
        result = validate_vessel(make_draft(eta=at(10).isoformat(), etd=at(10).isoformat()), [], now=NOW)
        assert result.errors == ["ETA must be before ETD"]

    def test_eta_after_etd_is_rejected(self, make_draft):
        result = validate_vessel(make_draft(eta=at(20).isoformat(), etd=at(10).isoformat()), [], now=NOW)
        assert "ETA must be before ETD" in result.errors

    def test_z_suffix_timestamps_accepted(self, make_draft):
        result = validate_vessel(
            make_draft(eta="2025-06-02T08:00:00.000Z", etd="2025-06-03T14:00:00.000Z"), [], now=NOW,
        )
        assert result.is_valid

    def test_past_eta_is_a_warning_not_an_error(self, make_draft, caplog):
        with caplog.at_level(logging.WARNING, logger="berthboard.modules.vessel_validator"):
            result = validate_vessel(make_draft(eta=at(-5).isoformat(), etd=at(5).isoformat()), [], now=NOW)
        assert result.is_valid
        assert "ETA is in the past" in caplog.text

    def test_unknown_vessel_type(self, make_draft):
        result = validate_vessel(make_draft(vessel_type="Tanker"), [], now=NOW)
        assert result.errors == ["Vessel type must be one of: Container, RoRo, Bulk"]

    @pytest.mark.parametrize("field,message", [
        ("loa", "LOA must be a positive number"),
        ("draft", "Draft must be a positive number"),
    ])
    @pytest.mark.parametrize("value", [0, -10, "abc"])
    def test_non_positive_dimensions(self, make_draft, field, message, value):
        result = validate_vessel(make_draft(**{field: value}), [], now=NOW)
        assert result.errors == [message]

    def test_numeric_strings_accepted(self, make_draft):
        result = validate_vessel(make_draft(loa="280.5", draft="14"), [], now=NOW)
        assert result.is_valid

    def test_berth_is_optional(self, make_draft):
        result = validate_vessel(make_draft(berth_id=None), [], now=NOW)
        assert result.is_valid

    def test_unknown_status(self, make_draft):
        result = validate_vessel(make_draft(status="Sunk"), [], now=NOW)
        assert result.errors[0].startswith("Status must be one of:")

    def test_accepts_pydantic_model(self, make_vessel):
        assert validate_vessel(make_vessel(), [], now=NOW).is_valid


class TestReferenceChecks:
    def test_skipped_without_reference_data(self, make_draft):
        result = validate_vessel(make_draft(terminal_id="NOPE", berth_id="NOPE"), [], now=NOW)
        assert result.is_valid

    def test_unknown_terminal(self, make_draft, terminals, berths):
        result = validate_vessel(
            make_draft(terminal_id="T9", berth_id=None), [], terminals=terminals, berths=berths, now=NOW,
        )
        assert result.errors == ["Terminal T9 does not exist"]

    def test_unknown_berth(self, make_draft, terminals, berths):
        result = validate_vessel(make_draft(berth_id="B9"), [], terminals=terminals, berths=berths, now=NOW)
        assert result.errors == ["Berth B9 does not exist"]

    def test_inactive_berth(self, make_draft, terminals, berths):
        result = validate_vessel(
            make_draft(terminal_id="T2", berth_id="B3"), [], terminals=terminals, berths=berths, now=NOW,
        )
        assert result.errors == ["Berth Berth 3 is not active"]

    def test_berth_in_other_terminal(self, make_draft, terminals, berths):
        result = validate_vessel(
            make_draft(terminal_id="T2", berth_id="B1"), [], terminals=terminals, berths=berths, now=NOW,
        )
        assert result.errors == ["Berth Berth 1 does not belong to terminal T2"]
