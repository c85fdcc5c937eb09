"""
Benchmark Analytics Module.

Compares the investor's reported portfolio value against the simulated proxy
("what if every deposit had bought the index fund instead") and provides the
ProxyAnalyser class for risk metrics of the simulated value curve (TWRR,
Volatility, Sharpe Ratio, Drawdown).
"""
from typing import Any, Dict
import pandas as pd
import numpy as np
from .config import DAYS_PER_YEAR, RISK_FREE_RATE, TRADING_DAYS_PER_YEAR


class ComparisonError(ValueError):
    """Raised when return statistics are mathematically undefined."""


# ==========================================
# COMPARISON CALCULATOR
# ==========================================
def _annualize(end_value: float, invested: float, years: float) -> float:
    """Compound annual growth rate in percent."""
    return ((end_value / invested) ** (1.0 / years) - 1.0) * 100.0


def calculate_comparison(
    total_invested: float,
    proxy_end_value: float,
    actual_end_value: float,
    start_date: Any,
    end_date: Any
) -> Dict[str, Any]:
    """
    Derives simple and annualised returns for the actual and proxy portfolios.

    Formulas:
    - Simple return     = (value - invested) / invested * 100
    - Elapsed years     = (end_date - start_date) in days / 365.25
    - Annualised return = ((value / invested) ^ (1 / years) - 1) * 100
    - Outperformance    = actual simple return - proxy simple return

    Args:
        total_invested (float): Sum of all counted deposit cash.
        proxy_end_value (float): Terminal valuation of the proxy timeline.
        actual_end_value (float): Investor-supplied current portfolio value.
        start_date (Any): First timeline date.
        end_date (Any): Last timeline date.

    Returns:
        Dict[str, Any]: The summary statistics (percentages, years, beat_market).

    Raises:
        ComparisonError: Invested cash is not positive, the current value is
        negative or not finite, or the elapsed period is not positive.
    """
    total_invested = float(total_invested)
    proxy_end_value = float(proxy_end_value)
    actual_end_value = float(actual_end_value)

    # Guard clauses: fail loudly instead of emitting inf/NaN percentages
    if not np.isfinite(total_invested) or total_invested <= 0:
        raise ComparisonError(
            f"Total invested is {total_invested:,.2f}: returns are undefined without deposits."
        )
    if not np.isfinite(actual_end_value) or actual_end_value < 0:
        raise ComparisonError(f"Current portfolio value {actual_end_value} is not a valid amount.")
    if not np.isfinite(proxy_end_value) or proxy_end_value < 0:
        raise ComparisonError(f"Proxy end value {proxy_end_value} is not a valid amount.")

    start = pd.Timestamp(start_date).normalize()
    end = pd.Timestamp(end_date).normalize()
    years = (end - start).days / DAYS_PER_YEAR

    if years <= 0:
        raise ComparisonError(
            f"Elapsed period {start.date()} to {end.date()} is not positive: "
            "annualised returns are undefined."
        )

    portfolio_return = (actual_end_value - total_invested) / total_invested * 100.0
    proxy_return = (proxy_end_value - total_invested) / total_invested * 100.0

    return {
        'total_invested': total_invested,
        'end_value': actual_end_value,
        'proxy_end_value': proxy_end_value,
        'portfolio_return': portfolio_return,
        'proxy_return': proxy_return,
        'annualized_portfolio_return': _annualize(actual_end_value, total_invested, years),
        'annualized_proxy_return': _annualize(proxy_end_value, total_invested, years),
        'outperformance': portfolio_return - proxy_return,
        'beat_market': portfolio_return > proxy_return,
        'years': years,
        'start_date': start,
        'end_date': end
    }


# ==========================================
# PROXY CURVE METRICS
# ==========================================
class ProxyAnalyser:
    """
    Risk and performance metrics of the simulated proxy value curve.

    Deposits inflate the raw valuation series, so returns are measured on the
    flow-adjusted curve: the cash converted on a given day is removed from
    that day's ending value before comparing it with the previous close.
    """

    def __init__(self, timeline: pd.DataFrame, risk_free_rate: float = RISK_FREE_RATE) -> None:
        """
        Args:
            timeline (pd.DataFrame): Output 'timeline' of `build_timeline`.
            risk_free_rate (float): Annual rate used for the Sharpe Ratio.
        """
        self.rf = risk_free_rate
        indexed = timeline.set_index('date')
        self.nav = indexed['valuation'].astype(float)
        self.flows = indexed['cash_invested'].astype(float).fillna(0.0)

    # ==========================================
    # INTERNAL CALCULATIONS
    # ==========================================
    def get_adjusted_returns_and_index(self) -> tuple[pd.Series, pd.Series]:
        """
        Calculates daily returns adjusted for deposits and the wealth index.
        """
        if self.nav.empty:
            return pd.Series(dtype=float), pd.Series(dtype=float)

        # Logic: If value jumped from 100 to 110 because 10 was deposited,
        # the organic end value is 100 and the day's return is 0%.
        organic_nav_end = self.nav - self.flows
        prev_nav = self.nav.shift(1)

        returns = (organic_nav_end / prev_nav) - 1.0
        returns = returns.replace([np.inf, -np.inf], np.nan).fillna(0.0)

        # Wealth index starts at 1.0
        wealth_index = (1 + returns).cumprod()
        wealth_index.iloc[0] = 1.0

        return returns, wealth_index

    def get_summary(self) -> Dict[str, float]:
        """
        Period TWRR, annualised volatility, Sharpe Ratio and maximum drawdown.

        Returns an empty dict when the curve spans less than one day.
        """
        if self.nav.empty:
            return {}

        days = (self.nav.index[-1] - self.nav.index[0]).days
        if days <= 0:
            return {}

        returns, wealth_index = self.get_adjusted_returns_and_index()

        # 1. Period TWRR (Cumulative, flow-neutral)
        period_twr = wealth_index.iloc[-1] / wealth_index.iloc[0] - 1

        # 2. Annualised Return (needed for the Sharpe Ratio)
        annualized_ret = (1 + period_twr) ** (365 / days) - 1

        # 3. Volatility (Always Annualised)
        vol = returns.std() * np.sqrt(TRADING_DAYS_PER_YEAR)
        if not np.isfinite(vol):
            vol = 0.0

        # 4. Sharpe Ratio
        sharpe = (annualized_ret - self.rf) / vol if vol > 1e-9 else 0.0

        # 5. Maximum Drawdown
        roll_max = wealth_index.cummax()
        drawdown = (wealth_index - roll_max) / roll_max
        max_dd = drawdown.min()

        return {
            'Period_TWRR': float(period_twr),
            'Annualized_Return': float(annualized_ret),
            'Volatility': float(vol),
            'Sharpe': float(sharpe),
            'Max_DD': float(max_dd),
            'Final_Value': float(self.nav.iloc[-1])
        }

    def get_summary_table(self) -> pd.DataFrame:
        """One-row DataFrame of `get_summary`, labelled for export."""
        return pd.DataFrame([self.get_summary()], index=['Proxy Portfolio'])
