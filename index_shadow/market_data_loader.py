"""
Market Data Loader Module.

Downloads the proxy instrument's daily history via yfinance and reshapes it
into the normalised price schema used by the PriceCalendar.
"""
import pandas as pd
import numpy as np
import yfinance as yf
import time
from typing import Any, Optional
from .config import PROXY_TICKER
from .data_loader import PRICE_FIELDS, RowParseError

def load_proxy_prices(
    ticker: str = PROXY_TICKER,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    max_retries: int = 3,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Downloads daily closing prices for the proxy instrument.

    Unlike holdings valuation, the trading calendar must stay sparse: no
    resampling or forward-filling is applied, so weekends and holidays remain
    absent and the Timeline Builder can detect them.

    Args:
        ticker: Provider ticker (default: the configured proxy).
        start: First date to request (inclusive).
        end: Last date to request (inclusive). Defaults to today.
        max_retries: Attempts before giving up on network errors.
        verbose: Prints download progress when True.

    Returns:
        DataFrame with columns 'date', 'price', 'open', 'high', 'low',
        'volume', 'change_percent', sorted ascending by date.

    Raises:
        RowParseError: If the provider returns no usable data.
    """
    end_dt = pd.Timestamp.today().normalize() if end is None else pd.Timestamp(end).normalize()
    # yfinance treats 'end' as exclusive.
    end_exclusive = end_dt + pd.Timedelta(days=1)

    if verbose:
        print(f"\n [>] Downloading {ticker} price history...")

    df = pd.DataFrame()
    for attempt in range(max_retries):
        try:
            dat = yf.Ticker(ticker)
            df = dat.history(start=start, end=end_exclusive, auto_adjust=False, actions=False)
            df = df.dropna(how='all')
            if df.empty and attempt < max_retries - 1:
                # Distinguishes temporary network failure from permanent data absence.
                raise ValueError("Received empty data")
            break

        except Exception as e:
            # Exponential backoff (5s, 10s, 20s).
            wait_time = 5 * (2 ** attempt)
            if attempt < max_retries - 1:
                if verbose:
                    print(f" [!] Issue with {ticker} ({e}). Retrying in {wait_time}s...")
                time.sleep(wait_time)
            else:
                raise RowParseError(f"Failed to download {ticker}: {e}") from e

    if df.empty:
        raise RowParseError(f"No price data returned for {ticker}")

    # Flatten MultiIndex columns if the provider returns grouped data.
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)

    # Remove timezone information and normalize to midnight.
    dates = pd.to_datetime(df.index)
    if dates.tz is not None:
        dates = dates.tz_localize(None)

    close = df['Close'].astype(float)
    prices = pd.DataFrame({
        'date': dates.normalize(),
        'price': close.to_numpy(),
        'open': df['Open'].astype(float).to_numpy() if 'Open' in df.columns else np.nan,
        'high': df['High'].astype(float).to_numpy() if 'High' in df.columns else np.nan,
        'low': df['Low'].astype(float).to_numpy() if 'Low' in df.columns else np.nan,
        'volume': df['Volume'].astype(str).to_numpy() if 'Volume' in df.columns else '',
        'change_percent': (close.pct_change() * 100).map(
            lambda x: '' if pd.isna(x) else f"{x:.2f}%"
        ).to_numpy()
    }, columns=PRICE_FIELDS)

    prices = prices[prices['price'] > 0]
    prices = prices.drop_duplicates(subset='date', keep='last').sort_values(by='date').reset_index(drop=True)

    if prices.empty:
        raise RowParseError(f"No positive closing prices returned for {ticker}")

    if verbose:
        print(f" [+] {ticker}: {len(prices)} trading days "
              f"({prices['date'].iloc[0].date()} to {prices['date'].iloc[-1].date()}).")

    return prices
