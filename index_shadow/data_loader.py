"""
Broker Export Parser.

This module handles the ingestion and normalisation of the two tabular inputs
of the benchmark comparison: the investor's Robinhood transaction export and
the proxy instrument's daily price history export. Both arrive as loosely
typed, string-keyed rows (currency symbols, thousands separators, accounting
parentheses, blank cells, disclaimer lines).

The core output is a pair of typed DataFrames:
1. Transactions: one row per cash-moving activity, oldest first.
2. Prices: one row per trading day, sorted ascending, unique by date.

This module serves as the ETL (Extract, Transform, Load) layer for the
timeline reconstruction.
"""
import os
import re
import pandas as pd
import numpy as np
from typing import Any, Dict, Iterable, List, Optional
from .config import TRANSACTION_COLUMNS, PRICE_COLUMNS

TRANSACTION_FIELDS = [
    'activity_date', 'process_date', 'settle_date', 'instrument',
    'description', 'trans_code', 'quantity', 'price', 'amount'
]

PRICE_FIELDS = ['date', 'price', 'open', 'high', 'low', 'volume', 'change_percent']

# Mirrors a lenient numeric read: the longest leading number wins ("5S" -> 5.0).
_LEADING_NUMBER = re.compile(r'^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?')


class RowParseError(ValueError):
    """Raised when an input row or a whole dataset cannot be normalised."""


# ==========================================
# SECTION 1: GENERIC UTILITIES
# ==========================================
def _is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return str(value).strip() == ''


def _leading_number(text: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(text.strip())
    if not match:
        return None
    return float(match.group(0))


def parse_currency(value: Any) -> Optional[float]:
    """
    Converts a currency string into a signed float.

    Handles the quirks of US-formatted broker exports: the dollar sign and
    thousands separators are removed, and a value wrapped in parentheses is
    accounting notation for a negative number. The sign is applied only after
    the punctuation has been stripped.

    Args:
        value (Any): The raw cell content (usually a string, possibly empty).

    Returns:
        Optional[float]: The parsed amount, or None if no number is present.
    """
    if _is_blank(value):
        return None

    raw = str(value).strip()
    cleaned = re.sub(r'[$,()]', '', raw)
    number = _leading_number(cleaned)

    if number is None:
        return None

    # Accounting notation: "($1,234.56)" means -1234.56
    if raw.startswith('(') and raw.endswith(')'):
        number = -number

    return number


def parse_quantity(value: Any) -> Optional[float]:
    """
    Converts a share quantity string into a float.

    Only thousands separators are removed. A cell without a numeric result
    yields None (null), never zero.
    """
    if _is_blank(value):
        return None
    return _leading_number(str(value).replace(',', ''))


def _parse_date(value: Any, source: str, row_number: int, field: str) -> pd.Timestamp:
    """Parses a mandatory date cell, raising RowParseError with full context."""
    try:
        ts = pd.Timestamp(pd.to_datetime(str(value).strip()))
    except (ValueError, TypeError) as e:
        raise RowParseError(
            f"{source}: row {row_number}: field '{field}' has unparseable date {value!r}"
        ) from e

    if pd.isna(ts):
        raise RowParseError(
            f"{source}: row {row_number}: field '{field}' has unparseable date {value!r}"
        )

    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def _parse_optional_date(value: Any) -> pd.Timestamp:
    if _is_blank(value):
        return pd.NaT
    ts = pd.to_datetime(str(value).strip(), errors='coerce')
    return ts.normalize() if not pd.isna(ts) else pd.NaT


def _text(value: Any) -> str:
    return '' if _is_blank(value) else str(value).strip()


# ==========================================
# SECTION 2: NORMALISATION LOGIC
# ==========================================
def normalize_transactions(
    rows: Iterable[Dict[str, Any]],
    source: str = 'transactions',
    verbose: bool = False
) -> pd.DataFrame:
    """
    Builds the typed transaction log from raw export rows.

    Rows missing the activity date or the transaction code cannot be parsed
    and are skipped (disclaimer footers, blank lines). Rows with a zero net
    cash amount carry no investment signal and are discarded.

    The Robinhood export lists the newest activity first, so the surviving
    rows are reversed and then stable-sorted by activity date to guarantee a
    chronological log while preserving the intra-day order.

    Args:
        rows (Iterable[Dict[str, Any]]): String-keyed rows from the export.
        source (str): Dataset label used in error messages.
        verbose (bool): Prints a parsing summary when True.

    Returns:
        pd.DataFrame: Columns as in TRANSACTION_FIELDS.

    Raises:
        RowParseError: If an activity date is malformed or no valid
        transaction remains.
    """
    cols = TRANSACTION_COLUMNS
    records = []
    skipped, zero_amount = 0, 0

    for row_number, row in enumerate(rows, start=1):
        if _is_blank(row.get(cols['activity_date'])) or _is_blank(row.get(cols['trans_code'])):
            skipped += 1
            continue

        amount = parse_currency(row.get(cols['amount']))
        if amount is None or amount == 0:
            zero_amount += 1
            continue

        quantity = parse_quantity(row.get(cols['quantity']))
        price = parse_currency(row.get(cols['price']))

        records.append({
            'activity_date': _parse_date(row[cols['activity_date']], source, row_number, cols['activity_date']),
            'process_date': _parse_optional_date(row.get(cols['process_date'])),
            'settle_date': _parse_optional_date(row.get(cols['settle_date'])),
            'instrument': _text(row.get(cols['instrument'])),
            'description': _text(row.get(cols['description'])),
            'trans_code': _text(row.get(cols['trans_code'])),
            'quantity': np.nan if quantity is None else quantity,
            'price': np.nan if price is None else price,
            'amount': amount
        })

    if not records:
        raise RowParseError(f"No valid transactions found in {source}")

    df = pd.DataFrame(records, columns=TRANSACTION_FIELDS)

    # Reverse first, then a stable sort: same-day rows keep their reversed order.
    df = df.iloc[::-1].sort_values(by='activity_date', kind='mergesort').reset_index(drop=True)

    if verbose:
        print(f"     - Transactions parsed: {len(df)}")
        print(f"     - Skipped (missing date/code): {skipped}")
        print(f"     - Discarded (zero amount): {zero_amount}")

    return df


def normalize_prices(
    rows: Iterable[Dict[str, Any]],
    source: str = 'prices',
    verbose: bool = False
) -> pd.DataFrame:
    """
    Builds the trading-day price table from raw export rows.

    Rows without a date or a closing price are skipped. The result is sorted
    ascending by date regardless of input order. Should a date appear more
    than once, the row that comes LAST in the input wins.

    Args:
        rows (Iterable[Dict[str, Any]]): String-keyed rows from the export.
        source (str): Dataset label used in error messages.
        verbose (bool): Prints a parsing summary when True.

    Returns:
        pd.DataFrame: Columns as in PRICE_FIELDS, unique ascending dates.

    Raises:
        RowParseError: On a malformed date, a non-positive or unparseable
        price, or when no valid price remains.
    """
    cols = PRICE_COLUMNS
    records = []
    skipped = 0

    for row_number, row in enumerate(rows, start=1):
        raw_date = row.get(cols['date'])
        raw_price = row.get(cols['price'])
        if _is_blank(raw_date) or _is_blank(raw_price):
            skipped += 1
            continue

        date = _parse_date(raw_date, source, row_number, cols['date'])
        price = parse_currency(raw_price)
        if price is None or price <= 0:
            raise RowParseError(
                f"{source}: row {row_number}: field '{cols['price']}' has invalid value "
                f"{raw_price!r} on {date.date()}"
            )

        # Open/High/Low are informational only; bad cells degrade to NaN.
        extras = {}
        for key in ('open', 'high', 'low'):
            parsed = parse_currency(row.get(cols[key]))
            extras[key] = np.nan if parsed is None else parsed

        records.append({
            'date': date,
            'price': price,
            **extras,
            'volume': _text(row.get(cols['volume'])),
            'change_percent': _text(row.get(cols['change_percent']))
        })

    if not records:
        raise RowParseError(f"No valid prices found in {source}")

    df = pd.DataFrame(records, columns=PRICE_FIELDS)

    # Last-write-wins on duplicated dates, decided in input order before sorting.
    n_before = len(df)
    df = df.drop_duplicates(subset='date', keep='last')
    n_duplicates = n_before - len(df)

    df = df.sort_values(by='date').reset_index(drop=True)

    if verbose:
        print(f"     - Prices parsed: {len(df)} ({df['date'].iloc[0].date()} to {df['date'].iloc[-1].date()})")
        print(f"     - Skipped (missing date/price): {skipped}")
        if n_duplicates:
            print(f" [!] Warning: {n_duplicates} duplicated dates resolved (last row wins).")

    return df


# ==========================================
# SECTION 3: FILE INGESTION
# ==========================================
def load_csv_rows(filepath: str) -> List[Dict[str, Any]]:
    """
    Reads a CSV export into a list of string-keyed rows.

    Every cell is kept as text (no type inference, no NaN conversion) so the
    normalisers see exactly what the broker wrote.

    Args:
        filepath (str): Path to the CSV file.

    Returns:
        List[Dict[str, Any]]: One dict per data row, keyed by header name.

    Raises:
        FileNotFoundError: If the file does not exist.
        RowParseError: If the file is empty.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"The file was not found at '{filepath}'")

    try:
        df_raw = pd.read_csv(
            filepath,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines='skip',    # Footer disclaimers may be ragged
            encoding='utf-8-sig'    # Handle BOM (Byte Order Mark) often found in financial CSVs
        )
    except pd.errors.EmptyDataError as e:
        raise RowParseError(f"{filepath} is empty") from e

    df_raw.columns = [str(c).strip() for c in df_raw.columns]
    return df_raw.to_dict(orient='records')


def load_transactions(filepath: str, verbose: bool = False) -> pd.DataFrame:
    """Loads and normalises a Robinhood transaction export."""
    if verbose:
        print(f"\n [>] Reading transaction export: {filepath}...")
    return normalize_transactions(load_csv_rows(filepath), source=os.path.basename(filepath), verbose=verbose)


def load_prices(filepath: str, verbose: bool = False) -> pd.DataFrame:
    """Loads and normalises a daily price history export."""
    if verbose:
        print(f"\n [>] Reading price history: {filepath}...")
    return normalize_prices(load_csv_rows(filepath), source=os.path.basename(filepath), verbose=verbose)
