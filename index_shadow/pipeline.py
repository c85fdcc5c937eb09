"""
Benchmark Comparison Pipeline.

Chains the processing stages into a single deterministic call:
1. Row normalisation (transactions and prices)
2. Deposit extraction
3. Price calendar construction
4. Timeline reconstruction (rollforward + share accounting)
5. Comparison statistics and proxy curve metrics

The whole computation is a pure function of its three inputs (transactions,
prices, current value). Failures in steps 1-4 propagate; a failure of the
comparison step is reported next to the successfully built timeline. Deposit
cash that never met a listed price fails the comparison step.
"""
import pandas as pd
from typing import Any, Dict, Iterable, Optional
from .data_loader import normalize_transactions, normalize_prices
from .data_processor import extract_deposits
from .price_calendar import PriceCalendar
from .portfolio_reconstructor import build_timeline
from .portfolio_analytics import ComparisonError, ProxyAnalyser, calculate_comparison


def _require_fully_invested(timeline_result: Dict[str, Any], calendar: PriceCalendar) -> None:
    """
    Refuses the comparison while deposit cash is still waiting for a price.

    Pending cash counts towards the invested total but holds no proxy shares,
    so any return computed from it would understate the proxy.

    Raises:
        ComparisonError: Naming the first pending deposit and the last
        listed price date.
    """
    pending_cash = timeline_result['pending_cash']
    if pending_cash <= 0:
        return

    rolled = timeline_result['rolled_deposits']
    pending = rolled[rolled['date'] > timeline_result['end_date']]
    first_pending = pending['original_date'].min()
    raise ComparisonError(
        f"{pending_cash:,.2f} of deposits (first on {first_pending.date()}) found no listed "
        f"price by {timeline_result['end_date'].date()}; the price history ends on "
        f"{calendar.last_date.date()}."
    )


def run_comparison(
    transactions: pd.DataFrame,
    prices: pd.DataFrame,
    current_value: float,
    end_date: Optional[Any] = None,
    as_of: Optional[Any] = None,
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Runs the benchmark comparison on normalised inputs.

    Args:
        transactions (pd.DataFrame): Output of `normalize_transactions`.
        prices (pd.DataFrame): Output of `normalize_prices`.
        current_value (float): Investor-supplied current portfolio value.
        end_date (Optional[Any]): Last civil day of the walk (default: today).
        as_of (Optional[Any]): Valuation date of `current_value`. When given,
            it replaces `end_date`, deposits after it are left out, and the
            proxy must have an exact price on that date.
        verbose (bool): Prints stage summaries when True.

    Returns:
        Dict[str, Any]: 'transactions', 'prices', 'extraction',
        'timeline_result', 'proxy_metrics', 'summary' (None if the comparison
        failed) and 'comparison_error' (message or None).

    Raises:
        PriceLookupError: `as_of` has no listed price.
        TimelineError: No deposits, or no priced day in range.
    """
    calendar = PriceCalendar(prices)
    extraction = extract_deposits(transactions, verbose=verbose)
    deposits = extraction['deposits']
    total_invested = extraction['total_invested']

    if as_of is not None:
        as_of = pd.Timestamp(as_of).normalize()
        # Exact-match or fail: a nearby session would misstate the proxy value.
        calendar.require(as_of, context='valuation date of the current portfolio value')
        deposits = deposits[deposits['date'] <= as_of].reset_index(drop=True)
        total_invested = float(deposits['amount'].sum())
        end_date = as_of

    timeline_result = build_timeline(deposits, calendar, end_date=end_date, verbose=verbose)
    timeline = timeline_result['timeline']

    proxy_metrics = ProxyAnalyser(timeline).get_summary()

    summary, comparison_error = None, None
    try:
        _require_fully_invested(timeline_result, calendar)
        summary = calculate_comparison(
            total_invested=total_invested,
            proxy_end_value=timeline_result['terminal_valuation'],
            actual_end_value=current_value,
            start_date=timeline['date'].iloc[0],
            end_date=timeline['date'].iloc[-1]
        )
    except ComparisonError as e:
        comparison_error = str(e)
        if verbose:
            print(f" [!] Comparison failed: {e}")

    if verbose and summary is not None:
        verdict = "beat" if summary['beat_market'] else "trailed"
        print(f" [+] Your portfolio {verdict} the proxy by {abs(summary['outperformance']):.2f} points.")

    return {
        'transactions': transactions,
        'prices': prices,
        'extraction': extraction,
        'timeline_result': timeline_result,
        'proxy_metrics': proxy_metrics,
        'summary': summary,
        'comparison_error': comparison_error
    }


def run_comparison_from_rows(
    transaction_rows: Iterable[Dict[str, Any]],
    price_rows: Iterable[Dict[str, Any]],
    current_value: float,
    end_date: Optional[Any] = None,
    as_of: Optional[Any] = None,
    verbose: bool = False
) -> Dict[str, Any]:
    """Normalises raw export rows, then delegates to `run_comparison`."""
    transactions = normalize_transactions(transaction_rows, verbose=verbose)
    prices = normalize_prices(price_rows, verbose=verbose)
    return run_comparison(
        transactions, prices, current_value,
        end_date=end_date, as_of=as_of, verbose=verbose
    )
