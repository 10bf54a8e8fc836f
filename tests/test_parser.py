"""
tests/test_parser.py
====================
Unit tests for ingestion: tabular parsing, alias resolution, numeric
coercion, JSON / CSV import and export.

Run:  pytest tests/ -v
"""

import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from fin_visualizer.parser import (
    DataImportError,
    parse_tabular,
    resolve_columns,
    to_numeric,
    normalize_rows,
    normalize_rows_with_issues,
    parse_csv_text,
    parse_json_text,
    import_file,
    export_json,
    to_tabular,
    EXPORT_FILENAME,
)
from fin_visualizer.types import Period, NUMERIC_FIELDS
from fin_visualizer.sample import sample_periods


BASIC_CSV = (
    "period,revenue,cogs,opex,net_income,operating_cash_flow,investing_cash_flow,"
    "financing_cash_flow,total_assets,total_liabilities,shareholders_equity\n"
    "2020,100,40,20,25,30,-10,-5,200,90,110"
)


class TestParseTabular:
    def test_empty_string(self):
        assert parse_tabular("") == []

    def test_whitespace_only(self):
        assert parse_tabular("  \n \r\n") == []

    def test_header_only(self):
        assert parse_tabular("period,revenue") == []

    def test_basic_rows(self):
        rows = parse_tabular("a,b\n1,2\n3,4")
        assert rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_crlf_line_endings(self):
        rows = parse_tabular("a,b\r\n1,2\r\n3,4\r\n")
        assert rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_cells_are_trimmed(self):
        rows = parse_tabular(" a , b \n  1 ,  2  ")
        assert rows == [{"a": "1", "b": "2"}]

    def test_short_row_padded_with_empty(self):
        rows = parse_tabular("a,b,c\n1")
        assert rows == [{"a": "1", "b": "", "c": ""}]

    def test_long_row_truncated(self):
        rows = parse_tabular("a,b\n1,2,3,4")
        assert rows == [{"a": "1", "b": "2"}]

    def test_quoted_comma_kept(self):
        rows = parse_tabular('period,revenue\n"FY 2023, restated",100')
        assert rows == [{"period": "FY 2023, restated", "revenue": "100"}]

    def test_quoted_header(self):
        rows = parse_tabular('"period","revenue"\n2021,5')
        assert rows == [{"period": "2021", "revenue": "5"}]

    def test_doubled_quotes_not_unescaped(self):
        rows = parse_tabular('a\n"say ""hi"""')
        assert rows[0]["a"] == 'say ""hi""'

    def test_blank_lines_skipped(self):
        rows = parse_tabular("a,b\n\n1,2\n\n")
        assert rows == [{"a": "1", "b": "2"}]

    def test_row_order_preserved(self):
        rows = parse_tabular("p\n2023\n2021\n2022")
        assert [r["p"] for r in rows] == ["2023", "2021", "2022"]


class TestToNumeric:
    def test_none(self):
        assert to_numeric(None) == 0.0

    def test_empty_string(self):
        assert to_numeric("") == 0.0

    def test_placeholders(self):
        assert to_numeric("-") == 0.0
        assert to_numeric("N/A") == 0.0
        assert to_numeric("null") == 0.0

    def test_int_and_float(self):
        assert to_numeric(12) == 12.0
        assert to_numeric(3.5) == 3.5

    def test_decimal_string(self):
        assert to_numeric("12345.67") == pytest.approx(12345.67)

    def test_negative_string(self):
        assert to_numeric("-10") == -10.0

    def test_thousands_and_currency(self):
        assert to_numeric("$1,250") == 1250.0

    def test_parenthetical_negative(self):
        assert to_numeric("(500)") == -500.0

    def test_unparsable_text(self):
        assert to_numeric("abc") is None

    def test_nan_and_inf(self):
        assert to_numeric(float("nan")) is None
        assert to_numeric("inf") is None

    def test_bool_is_not_a_number(self):
        assert to_numeric(True) is None

    def test_percent_is_fraction(self):
        assert to_numeric("25%") == pytest.approx(0.25)
        assert to_numeric("(12.5%)") == pytest.approx(-0.125)
        assert to_numeric("1,250%") == pytest.approx(12.5)


class TestResolveColumns:
    def test_canonical_names(self):
        cols = resolve_columns(["period", "revenue", "cogs"])
        assert cols["period"] == "period"
        assert cols["revenue"] == "revenue"
        assert cols["opex"] is None

    def test_case_insensitive(self):
        cols = resolve_columns(["Year", "REVENUE", "Net_Income"])
        assert cols["period"] == "Year"
        assert cols["revenue"] == "REVENUE"
        assert cols["net_income"] == "Net_Income"

    def test_alias_priority(self):
        # "revenue" outranks "sales" regardless of column position
        cols = resolve_columns(["sales", "revenue"])
        assert cols["revenue"] == "revenue"

    def test_alias_fallback(self):
        cols = resolve_columns(["Sales", "Cost of Goods Sold", "Capital Expenditure"])
        assert cols["revenue"] == "Sales"
        assert cols["cogs"] == "Cost of Goods Sold"
        assert cols["capex"] == "Capital Expenditure"

    def test_first_header_wins_on_case_duplicates(self):
        cols = resolve_columns(["Revenue", "revenue"])
        assert cols["revenue"] == "Revenue"


class TestNormalizeRows:
    def test_full_statement_row(self):
        periods = normalize_rows(parse_tabular(BASIC_CSV))
        assert len(periods) == 1
        p = periods[0]
        assert p.period == "2020"
        assert p.revenue == 100.0
        assert p.cogs == 40.0
        assert p.opex == 20.0
        assert p.investing_cash_flow == -10.0
        assert p.shareholders_equity == 110.0
        for name in ("r_and_d", "sga", "interest_expense", "tax_expense", "capex"):
            assert getattr(p, name) == 0.0

    def test_missing_columns_default(self):
        periods = normalize_rows([{"foo": "1"}])
        assert periods == [Period()]

    def test_order_preserved(self):
        rows = [{"period": "b", "revenue": "2"}, {"period": "a", "revenue": "1"}]
        assert [p.period for p in normalize_rows(rows)] == ["b", "a"]

    def test_unparsable_value_coerced_and_reported(self):
        periods, issues = normalize_rows_with_issues([{"period": "2021", "revenue": "lots"}])
        assert periods[0].revenue == 0.0
        assert len(issues) == 1
        assert issues[0].field == "revenue"
        assert issues[0].column == "revenue"
        assert issues[0].raw == "lots"

    def test_numeric_label_stringified(self):
        periods = normalize_rows([{"year": 2021, "revenue": 10}])
        assert periods[0].period == "2021"


class TestParseCsvText:
    def test_aliased_headers(self):
        result = parse_csv_text("Year,Sales,Net Income\nFY23,\"1,200\",(15)\n")
        assert result.source == "csv"
        p = result.periods[0]
        assert p.period == "FY23"
        assert p.revenue == 1200.0
        assert p.net_income == -15.0

    def test_issues_carry_row_index(self):
        result = parse_csv_text("period,revenue\n2020,1\n2021,n.a.\n")
        assert [i.row for i in result.issues] == [1]
        assert result.periods[1].revenue == 0.0


class TestCsvRoundTrip:
    def test_sample_round_trip(self):
        original = sample_periods()
        restored = normalize_rows(parse_tabular(to_tabular(original)))
        assert len(restored) == len(original)
        for a, b in zip(original, restored):
            assert a.period == b.period
            for name in NUMERIC_FIELDS:
                assert getattr(b, name) == pytest.approx(getattr(a, name))

    def test_fractional_values_round_trip(self):
        original = [Period(period="Q1, 2024", revenue=0.1 + 0.2, net_income=-1.5e-7)]
        restored = normalize_rows(parse_tabular(to_tabular(original)))
        assert restored[0].period == "Q1, 2024"
        assert restored[0].revenue == pytest.approx(0.3)
        assert restored[0].net_income == pytest.approx(-1.5e-7)

    def test_quote_in_label_keeps_values(self, caplog):
        original = [Period(period='FY"23', revenue=1.0, net_income=2.5)]
        with caplog.at_level("WARNING", logger="fin_visualizer.parser"):
            text = to_tabular(original)
        restored = normalize_rows(parse_tabular(text))
        assert restored[0].period == "FY'23"
        assert restored[0].revenue == 1.0
        assert restored[0].net_income == 2.5
        assert "FY" in caplog.text

    def test_quote_and_comma_in_label(self):
        restored = normalize_rows(parse_tabular(to_tabular([Period(period='Q1, "adj"', capex=7.0)])))
        assert restored[0].period == "Q1, 'adj'"
        assert restored[0].capex == 7.0

    def test_label_whitespace_trimmed(self):
        restored = normalize_rows(parse_tabular(to_tabular([Period(period=" 2020 ", revenue=3.0)])))
        assert restored[0].period == "2020"
        assert restored[0].revenue == 3.0

    def test_header_uses_canonical_names(self):
        header = to_tabular([]).splitlines()[0]
        assert header.split(",") == ["period", *NUMERIC_FIELDS]


class TestJsonImport:
    def test_array_of_objects(self):
        text = json.dumps([{"period": "2021", "revenue": 10, "Net Income": "2"}])
        result = parse_json_text(text)
        assert result.source == "json"
        assert result.periods[0].revenue == 10.0
        assert result.periods[0].net_income == 2.0
        assert result.periods[0].capex == 0.0

    def test_malformed_json(self):
        with pytest.raises(DataImportError):
            parse_json_text("[{")

    def test_non_array(self):
        with pytest.raises(DataImportError):
            parse_json_text('{"period": "2021"}')

    def test_non_object_items(self):
        with pytest.raises(DataImportError):
            parse_json_text("[1, 2]")

    def test_export_then_import(self):
        original = sample_periods()
        result = parse_json_text(export_json(original))
        assert result.periods == original
        assert result.issues == []


class TestImportFile:
    def test_csv_bytes(self):
        result = import_file("data.csv", BASIC_CSV.encode("utf-8"))
        assert result.source == "csv"
        assert result.periods[0].period == "2020"

    def test_csv_with_bom(self):
        result = import_file("data.csv", ("\ufeff" + BASIC_CSV).encode("utf-8"))
        assert result.periods[0].period == "2020"

    def test_txt_sniffs_json(self):
        result = import_file("data.txt", b'[{"period": "x", "revenue": 1}]')
        assert result.source == "json"

    def test_txt_sniffs_csv(self):
        result = import_file("data.txt", BASIC_CSV.encode("utf-8"))
        assert result.source == "csv"

    def test_unsupported_extension(self):
        with pytest.raises(DataImportError):
            import_file("data.xlsx", b"")

    def test_not_utf8(self):
        with pytest.raises(DataImportError):
            import_file("data.csv", b"\xff\xfe\x00bad")

    def test_no_rows_rejected(self):
        with pytest.raises(DataImportError):
            import_file("data.csv", b"period,revenue\n")

    def test_empty_json_array_rejected(self):
        with pytest.raises(DataImportError):
            import_file("data.json", b"[]")


class TestExport:
    def test_pretty_printed(self):
        text = export_json([Period(period="2020", revenue=1.0)])
        assert text.startswith("[\n  {")
        data = json.loads(text)
        assert data[0]["period"] == "2020"
        assert set(data[0]) == {"period", *NUMERIC_FIELDS}

    def test_filename(self):
        assert EXPORT_FILENAME == "financials.json"
