"""
Trading-Day Price Calendar.

Wraps the normalised price table in a date-indexed lookup structure. Prices
exist only for market-open days, so weekends and holidays are absent by
construction. Lookups are exact-date only: a query for a day without a listed
price returns None (or raises, via `require`) and never falls back to a nearby
session, which would attribute value to the wrong trading day.
"""
import pandas as pd
from typing import Any, Optional


class PriceLookupError(KeyError):
    """Raised when a date that must be priced has no listed price."""

    def __init__(self, date: pd.Timestamp, context: str = '') -> None:
        self.date = date
        self.context = context
        super().__init__(date)

    def __str__(self) -> str:
        suffix = f" ({self.context})" if self.context else ''
        return f"No price available for date: {self.date.date()}{suffix}"


class PriceCalendar:
    """
    Exact-match, binary-search price lookup over a sorted trading calendar.

    The Timeline Builder queries once per civil day across potentially years
    of history, so lookups use `searchsorted` on the sorted DatetimeIndex
    (O(log n)) rather than a linear scan.
    """

    def __init__(self, prices: pd.DataFrame) -> None:
        """
        Args:
            prices (pd.DataFrame): Normalised price table with a 'date' column
                and a 'price' column.

        Raises:
            ValueError: If dates are duplicated.
        """
        df = prices.copy()
        df['date'] = pd.to_datetime(df['date']).dt.normalize()
        df = df.sort_values(by='date').reset_index(drop=True)

        if df['date'].duplicated().any():
            dupes = df.loc[df['date'].duplicated(), 'date'].dt.date.tolist()
            raise ValueError(f"Price calendar contains duplicated dates: {dupes}")

        self._records = df
        self._index = pd.DatetimeIndex(df['date'])

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        if self.empty:
            return "PriceCalendar(empty)"
        return f"PriceCalendar({len(self)} days, {self.first_date.date()} to {self.last_date.date()})"

    @property
    def empty(self) -> bool:
        return len(self._index) == 0

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self._index

    @property
    def first_date(self) -> Optional[pd.Timestamp]:
        return None if self.empty else self._index[0]

    @property
    def last_date(self) -> Optional[pd.Timestamp]:
        return None if self.empty else self._index[-1]

    def _position(self, date: Any) -> Optional[int]:
        target = pd.Timestamp(date).normalize()
        pos = self._index.searchsorted(target, side='left')
        if pos < len(self._index) and self._index[pos] == target:
            return int(pos)
        return None

    def price_on(self, date: Any) -> Optional[pd.Series]:
        """
        Returns the price record listed for exactly `date`, or None.

        Args:
            date (Any): Anything pd.Timestamp accepts; time of day is ignored.

        Returns:
            Optional[pd.Series]: The record (date, price, open, ...), or None
            for weekends, holidays and dates outside the calendar.
        """
        pos = self._position(date)
        if pos is None:
            return None
        return self._records.iloc[pos]

    def is_trading_day(self, date: Any) -> bool:
        return self._position(date) is not None

    def require(self, date: Any, context: str = '') -> pd.Series:
        """Like `price_on`, but a missing price fails the whole computation."""
        record = self.price_on(date)
        if record is None:
            raise PriceLookupError(pd.Timestamp(date).normalize(), context)
        return record
