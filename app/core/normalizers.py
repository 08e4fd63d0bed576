# app/core/normalizers.py

"""
Data normalization for audit rows and recorded orders.

The cookie platform's export and the troop's own records disagree on
date formats, transaction type names and the sign of cookie quantities.
Everything here brings both sides into one shape before matching.
"""

from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, Iterable, Mapping, Optional
import logging
import math
import re

from app.models import (
    Cookie,
    InternalTransaction,
    NormalizedAuditRecord,
    Quantity,
    Seller,
)

logger = logging.getLogger(__name__)

# Columns every export must carry; anything else is a cookie column
EXPECTED_HEADERS = [
    "DATE",
    "ORDER #",
    "TYPE",
    "FROM",
    "TO",
    "STATUS",
    "TOTAL",
    "TOTAL $",
]

# Platform type -> troop type
TYPE_REMAP = {
    "COOKIE_SHARE": "T2G",
    "COOKIE_SHARE(B)": "T2G(B)",
    "COOKIE_SHARE(VB)": "T2G(VB)",
    "INITIAL": "C2T",
}

# The platform records these from the girl's side of the movement
AUDIT_TYPES_TO_INVERT = ("T2G", "T2G(B)", "T2G(VB)", "DIRECT_SHIP")

# The troop stores these from the sending side of the movement
ORDER_TYPES_TO_INVERT = ("G2T", "T2T", "C2T")

DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
]


# ============================================
# Scalars
# ============================================

def parse_date(d: Any) -> date | None:
    """
    Parse a date-like value into a date object.

    Handles:
    - date and datetime objects
    - ISO strings
    - US and a few other common spreadsheet formats
    - Unix timestamps
    """
    if d is None or isinstance(d, bool):
        return None

    if isinstance(d, datetime):
        return d.date()

    if isinstance(d, date):
        return d

    if isinstance(d, (int, float)):
        if not math.isfinite(d):
            return None
        try:
            return datetime.fromtimestamp(d, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(d, str):
        return _parse_date_text(d.strip())

    return None


# A season has few distinct dates, parsed again for every row/order pair
@lru_cache(maxsize=4096)
def _parse_date_text(text: str) -> date | None:
    if not text:
        return None

    # Try ISO format first
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def normalize_date(d: Any) -> str | None:
    """Canonical YYYY-MM-DD form of a date-like value, or None."""
    parsed = parse_date(d)
    return parsed.isoformat() if parsed else None


def normalize_order_number(order_num: Any) -> str:
    """
    Normalize an order number for comparison.

    - Trimmed
    - All whitespace removed
    - Lowercase
    """
    if not order_num:
        return ""

    if isinstance(order_num, float) and order_num.is_integer():
        order_num = int(order_num)

    return re.sub(r"\s+", "", str(order_num).strip()).lower()


def to_quantity(value: Any) -> Quantity:
    """Numeric value of a cookie cell, or None when the cell holds no number."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            if value.is_integer():
                return int(value)
        return value

    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            return to_quantity(float(cleaned))
        except ValueError:
            return None

    return None


def remap_transaction_type(value: Any) -> Optional[str]:
    """Translate the platform's transaction type into the troop's vocabulary."""
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    return TYPE_REMAP.get(text, text)


def invert_cookie_quantities(quantities: Mapping[str, Any]) -> dict[str, Any]:
    """
    Flip the sign of every numeric quantity.

    Zero becomes None so it reads as "nothing moved". Non-numeric values
    are left alone. Returns a new dict.
    """
    inverted = {}
    for abbr, value in quantities.items():
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            inverted[abbr] = None if value == 0 else -value
        else:
            inverted[abbr] = value
    return inverted


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ============================================
# Reference data
# ============================================

def get_cookie_abbreviations(cookies: Iterable[Any] | None) -> list[str]:
    """
    Ordered, de-duplicated cookie abbreviations.

    Accepts Cookie models, mappings with an "abbreviation" key or plain
    strings. Unordered collections are sorted so results are repeatable.
    """
    if not cookies:
        return []

    if isinstance(cookies, (set, frozenset)):
        cookies = sorted(cookies, key=str)

    abbreviations: list[str] = []
    for cookie in cookies:
        if isinstance(cookie, str):
            abbr = cookie
        elif isinstance(cookie, Mapping):
            abbr = cookie.get("abbreviation")
        else:
            abbr = getattr(cookie, "abbreviation", None)

        if abbr and abbr not in abbreviations:
            abbreviations.append(abbr)

    return abbreviations


def get_sellers_map(sellers: Iterable[Seller | Mapping] | None) -> dict[int, Seller]:
    """Index sellers by id."""
    seller_map: dict[int, Seller] = {}
    for seller in sellers or []:
        if not isinstance(seller, Seller):
            seller = Seller.model_validate(seller)
        seller_map[seller.id] = seller
    return seller_map


def has_valid_headers(headers: Iterable[str] | None) -> bool:
    """True if the export carries every fixed column."""
    present = set(headers or [])
    return all(header in present for header in EXPECTED_HEADERS)


def candidate_cookie_columns(headers: Iterable[str] | None) -> list[str]:
    """Headers that are not fixed columns; each should be a cookie abbreviation."""
    return [h for h in headers or [] if h not in EXPECTED_HEADERS]


# ============================================
# Audit rows
# ============================================

def row_to_object(row: Any, headers: list[str]) -> dict[str, Any] | None:
    """
    Label a parsed row's cells with the upload's headers.

    Returns None when the row is not a mapping with a "data" list.
    Missing trailing cells become None.
    """
    if not isinstance(row, Mapping):
        return None

    data = row.get("data")
    if not isinstance(data, (list, tuple)):
        return None

    return {
        header: data[index] if index < len(data) else None
        for index, header in enumerate(headers)
    }


def process_audit_row_for_matching(
    row_object: Mapping[str, Any],
    cookies: Iterable[Cookie | Mapping | str] | None,
    row_index: int = 0,
) -> NormalizedAuditRecord:
    """
    Build the normalized record used for matching from one labeled row.

    Neither argument is modified.
    """
    cells = dict(row_object or {})

    record_date = normalize_date(cells.get("DATE"))
    order_num = normalize_order_number(cells.get("ORDER #"))
    txn_type = remap_transaction_type(cells.get("TYPE"))

    # T2G, DIRECT_SHIP and C2T have no girl on the sending side
    if txn_type and (txn_type.startswith("T2G") or txn_type in ("DIRECT_SHIP", "C2T")):
        counterparty_from = None
    else:
        counterparty_from = _text(cells.get("FROM"))

    # G2T and C2T have no girl on the receiving side
    if txn_type and (txn_type.startswith("G2T") or txn_type == "C2T"):
        counterparty_to = None
    else:
        counterparty_to = _text(cells.get("TO"))

    quantities = {
        abbr: to_quantity(cells[abbr])
        for abbr in get_cookie_abbreviations(cookies)
        if abbr in cells
    }
    if txn_type in AUDIT_TYPES_TO_INVERT:
        quantities = invert_cookie_quantities(quantities)

    return NormalizedAuditRecord(
        row_index=row_index,
        date=record_date,
        order_num=order_num,
        type=txn_type,
        counterparty_from=counterparty_from,
        counterparty_to=counterparty_to,
        cookie_quantities=quantities,
        cells=cells,
    )


def normalize_audit_rows(
    rows: Iterable[Any] | None,
    headers: list[str],
    cookies: Iterable[Cookie | Mapping | str] | None,
) -> list[NormalizedAuditRecord]:
    """Normalize every structurally valid row of an upload, keeping upload order."""
    records: list[NormalizedAuditRecord] = []

    for index, row in enumerate(rows or []):
        row_object = row_to_object(row, headers)
        if row_object is None:
            logger.debug(f"Skipping malformed audit row {index}")
            continue
        records.append(process_audit_row_for_matching(row_object, cookies, row_index=index))

    return records


# ============================================
# Recorded orders
# ============================================

def normalize_order_row(row: Mapping[str, Any] | InternalTransaction) -> InternalTransaction:
    """
    Convert a stored order row into an InternalTransaction.

    G2T, T2T and C2T orders are stored from the sending side, so their
    quantities are inverted to line up with the audit rows.
    """
    if isinstance(row, InternalTransaction):
        data = row.model_dump(by_alias=True)
    else:
        data = dict(row)

    txn_type = _text(data.get("type"))

    cookies = {abbr: to_quantity(qty) for abbr, qty in (data.get("cookies") or {}).items()}
    if txn_type in ORDER_TYPES_TO_INVERT:
        cookies = invert_cookie_quantities(cookies)

    raw_date = data.get("order_date", data.get("date"))

    return InternalTransaction(
        id=data.get("id"),
        date=normalize_date(raw_date) or _text(raw_date),
        type=txn_type,
        to=data.get("to"),
        from_=data.get("from"),
        cookies=cookies,
        order_num=data.get("order_num"),
    )
