# tests/test_normalizers.py

"""
Tests for audit row and recorded order normalization.
"""

import pytest
from datetime import date, datetime

from app.models import Cookie, InternalTransaction, Seller
from app.core.normalizers import (
    EXPECTED_HEADERS,
    _parse_date_text,
    candidate_cookie_columns,
    get_cookie_abbreviations,
    get_sellers_map,
    has_valid_headers,
    invert_cookie_quantities,
    normalize_audit_rows,
    normalize_date,
    normalize_order_number,
    normalize_order_row,
    process_audit_row_for_matching,
    remap_transaction_type,
    row_to_object,
    to_quantity,
)

HEADERS = EXPECTED_HEADERS + ["ABC", "DEF"]


# ============================================
# Scalars
# ============================================

class TestNormalizeDate:

    def test_iso(self):
        assert normalize_date("2024-01-15") == "2024-01-15"

    def test_us_format(self):
        assert normalize_date("01/15/2024") == "2024-01-15"
        assert normalize_date("1/5/24") == "2024-01-05"

    def test_day_first_fallback(self):
        assert normalize_date("15/01/2024") == "2024-01-15"

    def test_with_time(self):
        assert normalize_date("01/15/2024 10:30 AM") == "2024-01-15"
        assert normalize_date("2024-01-15T10:30:00Z") == "2024-01-15"

    def test_month_name(self):
        assert normalize_date("Jan 15, 2024") == "2024-01-15"

    def test_date_objects(self):
        assert normalize_date(date(2024, 1, 15)) == "2024-01-15"
        assert normalize_date(datetime(2024, 1, 15, 23, 59)) == "2024-01-15"

    def test_unix_timestamp(self):
        assert normalize_date(1705276800) == "2024-01-15"

    @pytest.mark.parametrize("value", ["not-a-date", "", None, float("nan"), True])
    def test_unparseable(self, value):
        assert normalize_date(value) is None

    def test_repeated_strings_are_cached(self):
        before = _parse_date_text.cache_info().hits

        assert normalize_date("03/09/2031") == "2031-03-09"
        assert normalize_date("  03/09/2031 ") == "2031-03-09"

        assert _parse_date_text.cache_info().hits == before + 1


class TestNormalizeOrderNumber:

    def test_whitespace_and_case(self):
        assert normalize_order_number(" AB 123 ") == "ab123"

    def test_falsy(self):
        assert normalize_order_number(None) == ""
        assert normalize_order_number("") == ""

    def test_numeric(self):
        assert normalize_order_number(123) == "123"
        assert normalize_order_number(123.0) == "123"


class TestToQuantity:

    def test_numbers(self):
        assert to_quantity(5) == 5
        assert to_quantity(2.0) == 2
        assert to_quantity(-1.5) == -1.5

    def test_strings(self):
        assert to_quantity("5") == 5
        assert to_quantity(" -3 ") == -3
        assert to_quantity("1,200") == 1200

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan")])
    def test_no_number(self, value):
        assert to_quantity(value) is None


class TestRemapTransactionType:

    @pytest.mark.parametrize("raw,expected", [
        ("COOKIE_SHARE", "T2G"),
        ("COOKIE_SHARE(B)", "T2G(B)"),
        ("COOKIE_SHARE(VB)", "T2G(VB)"),
        (" INITIAL ", "C2T"),
        ("G2T", "G2T"),
    ])
    def test_remap(self, raw, expected):
        assert remap_transaction_type(raw) == expected

    def test_idempotent_on_canonical_types(self):
        for txn_type in ("T2G", "T2G(B)", "T2G(VB)", "C2T", "T2T", "G2G"):
            assert remap_transaction_type(remap_transaction_type(txn_type)) == txn_type

    def test_missing(self):
        assert remap_transaction_type(None) is None
        assert remap_transaction_type("   ") is None


class TestInvertCookieQuantities:

    def test_invert(self):
        assert invert_cookie_quantities({"ABC": 5, "DEF": 0}) == {"ABC": -5, "DEF": None}

    def test_returns_new_dict(self):
        original = {"ABC": 5}
        inverted = invert_cookie_quantities(original)
        assert original == {"ABC": 5}
        assert inverted is not original

    def test_non_numeric_untouched(self):
        assert invert_cookie_quantities({"ABC": None, "DEF": "n/a"}) == {"ABC": None, "DEF": "n/a"}


# ============================================
# Reference data
# ============================================

class TestReferenceData:

    def test_cookie_abbreviations_mixed_inputs(self):
        cookies = [Cookie(abbreviation="ABC"), {"abbreviation": "DEF"}, "GHI", "ABC", {"name": "no abbr"}]
        assert get_cookie_abbreviations(cookies) == ["ABC", "DEF", "GHI"]

    def test_cookie_abbreviations_set_is_sorted(self):
        assert get_cookie_abbreviations({"DEF", "ABC"}) == ["ABC", "DEF"]

    def test_cookie_abbreviations_empty(self):
        assert get_cookie_abbreviations(None) == []

    def test_sellers_map(self):
        sellers = get_sellers_map([{"id": 1, "first_name": "Jane", "last_name": "Doe"}, Seller(id=2)])
        assert sellers[1].full_name == "Jane Doe"
        assert set(sellers) == {1, 2}

    def test_valid_headers(self):
        assert has_valid_headers(HEADERS) is True
        assert has_valid_headers(["DATE", "TYPE", "ABC"]) is False
        assert has_valid_headers(None) is False

    def test_candidate_cookie_columns(self):
        assert candidate_cookie_columns(HEADERS) == ["ABC", "DEF"]


# ============================================
# Audit rows
# ============================================

class TestRowToObject:

    def test_labels_cells(self):
        obj = row_to_object({"data": ["2024-01-15", "A1"]}, ["DATE", "ORDER #"])
        assert obj == {"DATE": "2024-01-15", "ORDER #": "A1"}

    def test_pads_missing_cells(self):
        obj = row_to_object({"data": ["2024-01-15"]}, ["DATE", "TYPE"])
        assert obj == {"DATE": "2024-01-15", "TYPE": None}

    @pytest.mark.parametrize("row", [None, "row", ["2024-01-15"], {"cells": []}, {"data": "x"}])
    def test_malformed(self, row):
        assert row_to_object(row, ["DATE"]) is None


class TestProcessAuditRow:

    def test_cookie_share_row(self):
        cells = {"DATE": "2024-01-15", "TYPE": "COOKIE_SHARE", "TO": None, "FROM": "Jane Doe", "ABC": 5}
        record = process_audit_row_for_matching(cells, ["ABC"])

        assert record.date == "2024-01-15"
        assert record.type == "T2G"
        assert record.cookie_quantities == {"ABC": -5}
        assert record.counterparty_from is None
        assert record.counterparty_to is None
        assert record.counterparty == "Jane Doe"
        assert record.is_matchable is True

    def test_does_not_mutate_input(self):
        cells = {"DATE": "2024-01-15", "TYPE": "T2G", "TO": "Jane Doe", "ABC": 5, "DEF": 0}
        snapshot = dict(cells)
        record = process_audit_row_for_matching(cells, ["ABC", "DEF"])

        assert cells == snapshot
        assert record.cookie_quantities == {"ABC": -5, "DEF": None}
        assert record.cells == snapshot

    def test_girl_to_troop_keeps_sign(self):
        cells = {"DATE": "01/16/2024", "TYPE": "G2T", "FROM": "Jane Doe", "TO": "Troop 123", "ABC": 4}
        record = process_audit_row_for_matching(cells, ["ABC"])

        assert record.counterparty_from == "Jane Doe"
        assert record.counterparty_to is None
        assert record.cookie_quantities == {"ABC": 4}

    def test_girl_to_girl_keeps_both_names(self):
        cells = {"DATE": "2024-01-16", "TYPE": "G2G", "FROM": "Jane Doe", "TO": "John Smith", "ORDER #": " G 1 "}
        record = process_audit_row_for_matching(cells, ["ABC"])

        assert record.counterparty_from == "Jane Doe"
        assert record.counterparty_to == "John Smith"
        assert record.order_num == "g1"
        assert record.cookie_quantities == {}

    def test_initial_order_needs_no_counterparty(self):
        cells = {"DATE": "2024-01-10", "TYPE": "INITIAL", "FROM": "Council", "TO": None, "ABC": 100}
        record = process_audit_row_for_matching(cells, ["ABC"])

        assert record.type == "C2T"
        assert record.counterparty_from is None
        assert record.cookie_quantities == {"ABC": 100}
        assert record.is_matchable is True

    def test_not_matchable_without_date(self):
        cells = {"DATE": "soon", "TYPE": "T2G", "TO": "Jane Doe"}
        assert process_audit_row_for_matching(cells, []).is_matchable is False

    def test_not_matchable_without_counterparty(self):
        cells = {"DATE": "2024-01-15", "TYPE": "T2G", "TO": None, "FROM": "  "}
        assert process_audit_row_for_matching(cells, []).is_matchable is False


class TestNormalizeAuditRows:

    def test_skips_malformed_rows(self):
        rows = [
            {"data": ["2024-01-15", "A1", "T2G", None, "Jane Doe", "", 5, 30, 5, None]},
            "garbage",
            {"data": ["2024-01-16", "A2", "G2T", "Jane Doe", None, "", 2, 12, 2, None]},
        ]
        records = normalize_audit_rows(rows, HEADERS, ["ABC", "DEF"])

        assert [r.row_index for r in records] == [0, 2]
        assert records[0].cookie_quantities == {"ABC": -5, "DEF": None}
        assert records[1].cookie_quantities == {"ABC": 2, "DEF": None}


# ============================================
# Recorded orders
# ============================================

class TestNormalizeOrderRow:

    def test_inverts_sending_side_types(self):
        row = {"id": 7, "order_date": "01/15/2024", "type": "G2T", "from": 1, "cookies": {"ABC": 3, "DEF": 0}}
        txn = normalize_order_row(row)

        assert txn.date == "2024-01-15"
        assert txn.from_ == 1
        assert txn.to is None
        assert txn.cookies == {"ABC": -3, "DEF": None}

    def test_receiving_side_types_unchanged(self):
        row = {"id": 8, "order_date": "2024-01-15", "type": "T2G", "to": None, "from": 1, "cookies": {"ABC": -5}}
        assert normalize_order_row(row).cookies == {"ABC": -5}

    def test_accepts_transaction(self):
        txn = InternalTransaction(id=1, date="2024-01-15", type="C2T", cookies={"ABC": -100}, order_num="X1")
        normalized = normalize_order_row(txn)

        assert normalized.cookies == {"ABC": 100}
        assert normalized.order_num == "X1"
        assert txn.cookies == {"ABC": -100}

    def test_unparseable_date_kept_as_text(self):
        assert normalize_order_row({"order_date": "TBD", "type": "T2G"}).date == "TBD"
