import pandas as pd
import numpy as np
from typing import Any, Dict, Optional
from .price_calendar import PriceCalendar

TIMELINE_COLUMNS = [
    'date', 'price', 'cash_invested', 'shares_bought',
    'purchase_price', 'cumulative_shares', 'valuation'
]


class TimelineError(ValueError):
    """Raised when the deposit history cannot produce a timeline."""


def build_timeline(
    deposits: pd.DataFrame,
    calendar: PriceCalendar,
    end_date: Optional[Any] = None,
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Reconstructs the daily proxy position implied by the deposit history.

    Methodology:
    1. Civil Calendar Walk: every day from the first deposit to the end date,
       weekends included, so deposits on non-trading days are detected.
    2. Rollforward: cash sitting on a day without a listed price is re-dated to
       the NEXT civil day (not straight to the next session) and re-evaluated
       on the following iteration, one day at a time, until it meets a price.
    3. Share Accounting: a priced day converts its whole net cash in a single
       division (cash / price), so same-day deposits share one conversion.

    Rollforward operates on a private working copy; the caller's deposits are
    never touched and re-running on 'rolled_deposits' is a no-op shift.

    Args:
        deposits (pd.DataFrame): Columns 'date' and 'amount' (positive).
        calendar (PriceCalendar): Exact-match trading-day prices.
        end_date (Optional[Any]): Last civil day (inclusive). Defaults to today.
        verbose (bool): Prints a reconstruction summary when True.

    Returns:
        Dict[str, Any]: 'timeline' (one row per priced day), 'rolled_deposits'
        (date after rollforward plus 'original_date'), 'pending_cash' (cash
        that never met a priced day up to end_date), 'terminal_valuation',
        'final_shares', 'start_date', 'end_date'.

    Raises:
        TimelineError: No deposits, end date before the first deposit, or no
        priced day in the walked range.
    """

    # ==========================================
    # STEP 1: UNPACK & SETUP
    # ==========================================

    if deposits is None or deposits.empty:
        raise TimelineError("No deposits found: cannot determine the timeline start date.")

    # Working copy: the only state rollforward is allowed to mutate.
    working = deposits[['date', 'amount']].copy()
    working['date'] = pd.to_datetime(working['date']).dt.normalize()
    working = working.sort_values(by='date', kind='mergesort').reset_index(drop=True)
    working['original_date'] = working['date']

    start_date = working['date'].iloc[0]
    if end_date is None:
        end_date = pd.Timestamp.today().normalize()
    else:
        end_date = pd.Timestamp(end_date).normalize()

    if end_date < start_date:
        raise TimelineError(
            f"End date {end_date.date()} precedes the first deposit on {start_date.date()}."
        )

    # freq='D' gives a row for EVERY day (including weekends and holidays)
    all_dates = pd.date_range(start=start_date, end=end_date, freq='D')

    # Numpy views keep the per-day scan cheap over multi-year walks.
    deposit_dates = working['date'].to_numpy(dtype='datetime64[ns]').copy()
    deposit_amounts = working['amount'].to_numpy(dtype=float)
    one_day = np.timedelta64(1, 'D')

    # ==========================================
    # STEP 2: THE DAY WALK
    # ==========================================

    points = []
    cumulative_shares = 0.0
    roll_steps = 0

    for day in all_dates:
        mask_today = deposit_dates == day.to_datetime64()
        cash_today = float(deposit_amounts[mask_today].sum())

        record = calendar.price_on(day)

        # A. Non-trading day: push today's cash one civil day forward
        if record is None:
            if cash_today > 0:
                deposit_dates[mask_today] = deposit_dates[mask_today] + one_day
                roll_steps += 1
            continue

        # B. Trading day: convert the day's net cash at the exact price
        price = float(record['price'])
        shares_bought = cash_today / price if cash_today > 0 else 0.0
        cumulative_shares += shares_bought

        points.append({
            'date': day,
            'price': price,
            'cash_invested': cash_today,
            'shares_bought': shares_bought if cash_today > 0 else np.nan,
            'purchase_price': price if cash_today > 0 else np.nan,
            'cumulative_shares': cumulative_shares,
            'valuation': cumulative_shares * price
        })

    if not points:
        raise TimelineError(
            f"No listed price between {start_date.date()} and {end_date.date()}. "
            "Check the coverage of the price history."
        )

    # ==========================================
    # STEP 3: PACKAGE RESULTS
    # ==========================================

    timeline = pd.DataFrame(points, columns=TIMELINE_COLUMNS)

    working['date'] = pd.to_datetime(deposit_dates)
    rolled_deposits = working[['date', 'amount', 'original_date']]

    # Deposits still dated after the walk never met a price (e.g. a weekend "today").
    pending_cash = float(rolled_deposits.loc[rolled_deposits['date'] > end_date, 'amount'].sum())

    final_point = timeline.iloc[-1]

    if verbose:
        n_rolled = int((rolled_deposits['date'] != rolled_deposits['original_date']).sum())
        print(" [>] Reconstructing proxy timeline...")
        print(f"     - Period: {start_date.date()} to {end_date.date()} ({len(all_dates)} days)")
        print(f"     - Trading days emitted: {len(timeline)}")
        print(f"     - Deposits rolled forward: {n_rolled} ({roll_steps} day shifts)")
        if pending_cash > 0:
            print(f" [!] Warning: {pending_cash:,.2f} of deposits found no priced day before {end_date.date()}.")
        print(f" [+] Final proxy position: {final_point['cumulative_shares']:.4f} shares, "
              f"value {final_point['valuation']:,.2f}")

    return {
        'timeline': timeline,
        'rolled_deposits': rolled_deposits,
        'pending_cash': pending_cash,
        'terminal_valuation': float(final_point['valuation']),
        'final_shares': float(final_point['cumulative_shares']),
        'start_date': start_date,
        'end_date': end_date
    }
