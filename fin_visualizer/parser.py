"""
fin_visualizer/parser.py
========================
Data ingestion for the dashboard. Handles:
  - Delimited text (.csv) via a small quote-aware tabular parser
  - JSON arrays of period objects (.json)
  - Alias-based column resolution onto the canonical Period record
  - JSON / CSV export of the current period list

Every import path goes through the same normalizer, so JSON objects get the
same alias matching and zero-defaulting as CSV rows.
"""
from __future__ import annotations
import json
import logging
import math
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .types import Period, CoercionIssue, ImportResult, NUMERIC_FIELDS

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "financials.json"
CSV_EXPORT_FILENAME = "financials.csv"


class DataImportError(ValueError):
    """Raised when an uploaded file cannot replace the current dataset."""


# ─── Tabular Parser ───────────────────────────────────────────────────────────

_LINE_SPLIT = re.compile(r"\r?\n")


def _split_cells(line: str) -> List[str]:
    """Split one line on commas, treating commas inside double quotes as text."""
    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
            current.append(ch)
        elif ch == "," and not in_quotes:
            cells.append("".join(current))
            current = []
        else:
            current.append(ch)
    cells.append("".join(current))
    return [_clean_cell(c) for c in cells]


def _clean_cell(cell: str) -> str:
    s = cell.strip()
    if s.startswith('"'):
        s = s[1:]
    if s.endswith('"'):
        s = s[:-1]
    return s.strip()


def parse_tabular(text: str) -> List[Dict[str, str]]:
    """
    Parse comma-delimited text into one {header: value} dict per data row.

    The first non-blank line is the header. Short rows are padded with "" and
    surplus cells are dropped. Quoting is a token-level strip of one leading
    and one trailing '"': doubled quotes ("") are NOT unescaped, so values
    that themselves contain quote characters do not round-trip.
    """
    if not text:
        return []
    lines = [ln for ln in _LINE_SPLIT.split(text.strip()) if ln.strip()]
    if not lines:
        return []

    headers = _split_cells(lines[0])
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        cells = _split_cells(line)
        rows.append({h: (cells[i] if i < len(cells) else "") for i, h in enumerate(headers)})
    return rows


# ─── Field Aliases ────────────────────────────────────────────────────────────

# Ordered by priority: the first alias found among the headers wins.
FIELD_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("period", ("period", "year", "fiscal_year", "fy", "quarter", "date", "label")),
    ("revenue", ("revenue", "revenues", "sales", "net_sales", "net sales", "total_revenue", "total revenue", "turnover")),
    ("cogs", ("cogs", "cost_of_goods_sold", "cost of goods sold", "cost_of_revenue", "cost of revenue", "cost_of_sales")),
    ("opex", ("opex", "operating_expenses", "operating expenses", "operating_expense", "total_opex")),
    ("r_and_d", ("r_and_d", "rnd", "r&d", "research_and_development", "research and development")),
    ("sga", ("sga", "sg&a", "selling_general_and_administrative", "selling_general_administrative")),
    ("interest_expense", ("interest_expense", "interest expense", "interest", "finance_costs", "finance_cost")),
    ("tax_expense", ("tax_expense", "tax expense", "income_tax_expense", "income_tax", "tax", "taxes")),
    ("net_income", ("net_income", "net income", "net_profit", "profit_after_tax", "pat", "profit")),
    ("operating_cash_flow", ("operating_cash_flow", "operating cash flow", "cash_from_operations", "cfo", "ocf")),
    ("investing_cash_flow", ("investing_cash_flow", "investing cash flow", "cash_from_investing", "cfi", "icf")),
    ("financing_cash_flow", ("financing_cash_flow", "financing cash flow", "cash_from_financing", "cff")),
    ("capex", ("capex", "capital_expenditure", "capital expenditure", "capital_expenditures")),
    ("total_assets", ("total_assets", "total assets", "assets")),
    ("total_liabilities", ("total_liabilities", "total liabilities", "liabilities")),
    ("shareholders_equity", ("shareholders_equity", "shareholders equity", "stockholders_equity", "total_equity", "total equity", "equity")),
)


def _header_index(headers: Sequence[str]) -> Dict[str, str]:
    """Case-folded header → header as written (first occurrence wins)."""
    index: Dict[str, str] = {}
    for h in headers:
        key = str(h).strip().lower()
        if key not in index:
            index[key] = h
    return index


def resolve_columns(headers: Sequence[str]) -> Dict[str, Optional[str]]:
    """
    Map each canonical Period field to the source header that supplies it.

    Fields with no matching alias map to None and take their default.
    """
    index = _header_index(headers)
    resolved: Dict[str, Optional[str]] = {}
    for canonical, aliases in FIELD_ALIASES:
        resolved[canonical] = next((index[a] for a in aliases if a in index), None)
    return resolved


# ─── Numeric Normalisation ────────────────────────────────────────────────────

_PLACEHOLDERS = {"-", "--", "—", "n/a", "na", "nan", "null", "none"}


def to_numeric(val: Any) -> Optional[float]:
    """
    Convert a cell value to float.

    Missing values (None, "", placeholders such as "-" or "N/A") give 0.0.
    Text that still is not a number after stripping separators and currency
    marks gives None, so callers can report it. A trailing "%" reads as a
    fraction: "25%" → 0.25.
    """
    if val is None:
        return 0.0
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        f = float(val)
        return f if math.isfinite(f) else None
    s = str(val).strip()
    if not s or s.lower() in _PLACEHOLDERS:
        return 0.0
    # Parenthetical negatives: (1234) → -1234
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]
    percent = s.endswith("%")
    if percent:
        s = s[:-1]
    s = (s.replace(",", "").replace("$", "").replace("€", "")
         .replace("£", "").replace("₹", "").strip())
    try:
        f = float(s)
    except ValueError:
        return None
    if percent:
        f /= 100
    return f if math.isfinite(f) else None


# ─── Record Normalizer ────────────────────────────────────────────────────────

def normalize_rows_with_issues(
    rows: Sequence[Mapping[str, Any]],
) -> Tuple[List[Period], List[CoercionIssue]]:
    """Normalize rows into Periods and report every value coerced to 0."""
    periods: List[Period] = []
    issues: List[CoercionIssue] = []
    column_cache: Dict[Tuple[str, ...], Dict[str, Optional[str]]] = {}

    for i, row in enumerate(rows):
        key = tuple(row.keys())
        columns = column_cache.get(key)
        if columns is None:
            columns = column_cache[key] = resolve_columns(key)

        label_col = columns["period"]
        label = row.get(label_col) if label_col is not None else None
        values: Dict[str, Any] = {"period": "" if label is None else str(label).strip()}

        for name in NUMERIC_FIELDS:
            col = columns[name]
            raw = row.get(col) if col is not None else None
            num = to_numeric(raw)
            if num is None:
                issues.append(CoercionIssue(row=i, field=name, column=str(col), raw=str(raw)))
                logger.warning("Row %d: %s=%r is not a number, using 0", i, col, raw)
                num = 0.0
            values[name] = num

        periods.append(Period(**values))

    return periods, issues


def normalize_rows(rows: Sequence[Mapping[str, Any]]) -> List[Period]:
    return normalize_rows_with_issues(rows)[0]


# ─── File Import ──────────────────────────────────────────────────────────────

def parse_csv_text(text: str) -> ImportResult:
    rows = parse_tabular(text)
    periods, issues = normalize_rows_with_issues(rows)
    return ImportResult(periods=periods, issues=issues, source="csv")


def parse_json_text(text: str) -> ImportResult:
    """Parse a JSON array of period objects through the normalizer."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataImportError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e

    if not isinstance(data, list):
        raise DataImportError(f"Expected a JSON array of periods, got {type(data).__name__}")

    rows: List[Dict[str, Any]] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise DataImportError(f"Item {i} is {type(item).__name__}, expected an object")
        rows.append({str(k): v for k, v in item.items()})

    periods, issues = normalize_rows_with_issues(rows)
    return ImportResult(periods=periods, issues=issues, source="json")


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DataImportError(f"File is not UTF-8 text: {e.reason}") from e


def import_file(filename: str, raw: bytes) -> ImportResult:
    """
    Parse one uploaded file (.json, .csv or .txt) into an ImportResult.

    Raises DataImportError when the file cannot produce at least one period;
    the caller keeps its previous dataset in that case.
    """
    ext = os.path.splitext(filename)[1].lower()
    text = _decode(raw)

    if ext == ".json":
        result = parse_json_text(text)
    elif ext == ".csv":
        result = parse_csv_text(text)
    elif ext == ".txt":
        result = parse_json_text(text) if text.lstrip().startswith("[") else parse_csv_text(text)
    else:
        raise DataImportError(f"Unsupported file format: {ext or filename}")

    if not result.periods:
        raise DataImportError(f"No rows found in {filename}")

    logger.info("Imported %d periods from %s (%d coerced values)",
                len(result.periods), filename, len(result.issues))
    return result


# ─── Export ───────────────────────────────────────────────────────────────────

def export_json(periods: Sequence[Period]) -> str:
    return json.dumps([p.to_dict() for p in periods], indent=2)


def _csv_cell(value: Any) -> str:
    s = str(value)
    if '"' in s:
        # the tabular parser has no escape for a literal quote
        logger.warning("Label %r contains '\"'; exported with ' instead", s)
        s = s.replace('"', "'")
    return f'"{s}"' if "," in s else s


def _format_number(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else repr(float(v))


def to_tabular(periods: Sequence[Period]) -> str:
    """
    Serialize periods as CSV with the canonical column names.

    Numbers round-trip through parse_tabular. Labels round-trip except that
    the reader trims cells: surrounding whitespace and one wrapping pair of
    double quotes are lost, and a '"' inside a label is written as "'".
    """
    header = ["period", *NUMERIC_FIELDS]
    lines = [",".join(header)]
    for p in periods:
        cells = [_csv_cell(p.period)] + [_format_number(getattr(p, f)) for f in NUMERIC_FIELDS]
        lines.append(",".join(cells))
    return "\n".join(lines) + "\n"
