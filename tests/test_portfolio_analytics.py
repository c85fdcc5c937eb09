import math
import unittest
import numpy as np
import pandas as pd

from index_shadow.portfolio_analytics import ComparisonError, ProxyAnalyser, calculate_comparison


class TestComparisonCalculator(unittest.TestCase):

    def setUp(self):
        self.summary = calculate_comparison(
            total_invested=15000.0,
            proxy_end_value=17454.55,
            actual_end_value=18000.0,
            start_date='2023-01-01',
            end_date='2023-12-31'
        )

    def test_simple_returns(self):
        """Math: (18,000 - 15,000) / 15,000 = 20%; (17,454.55 - 15,000) / 15,000 = 16.36%."""
        self.assertAlmostEqual(self.summary['portfolio_return'], 20.0)
        self.assertAlmostEqual(self.summary['proxy_return'], 16.3637, places=3)

    def test_elapsed_years_use_365_25(self):
        self.assertAlmostEqual(self.summary['years'], 364 / 365.25)

    def test_annualized_returns(self):
        years = 364 / 365.25
        expected = ((18000.0 / 15000.0) ** (1 / years) - 1) * 100
        self.assertAlmostEqual(self.summary['annualized_portfolio_return'], expected)
        expected_proxy = ((17454.55 / 15000.0) ** (1 / years) - 1) * 100
        self.assertAlmostEqual(self.summary['annualized_proxy_return'], expected_proxy)

    def test_outperformance_and_verdict(self):
        self.assertAlmostEqual(self.summary['outperformance'], 20.0 - 16.3637, places=3)
        self.assertTrue(self.summary['beat_market'])

    def test_losing_to_the_market(self):
        summary = calculate_comparison(15000.0, 17454.55, 15000.0, '2023-01-01', '2023-12-31')
        self.assertFalse(summary['beat_market'])
        self.assertLess(summary['outperformance'], 0)

    def test_equal_returns_do_not_beat_the_market(self):
        summary = calculate_comparison(1000.0, 1100.0, 1100.0, '2023-01-01', '2024-01-01')
        self.assertFalse(summary['beat_market'])

    def test_zero_invested_fails_explicitly(self):
        with self.assertRaises(ComparisonError):
            calculate_comparison(0.0, 0.0, 5000.0, '2023-01-01', '2023-12-31')

    def test_same_day_period_fails_explicitly(self):
        with self.assertRaises(ComparisonError):
            calculate_comparison(1000.0, 1000.0, 1000.0, '2023-01-01', '2023-01-01')

    def test_negative_current_value_is_rejected(self):
        with self.assertRaises(ComparisonError):
            calculate_comparison(1000.0, 1000.0, -1.0, '2023-01-01', '2023-12-31')

    def test_no_infinite_or_nan_outputs(self):
        summary = calculate_comparison(1000.0, 0.0, 0.0, '2023-01-01', '2023-12-31')
        for key in ('portfolio_return', 'proxy_return', 'annualized_portfolio_return',
                    'annualized_proxy_return', 'outperformance'):
            self.assertTrue(math.isfinite(summary[key]), key)
        self.assertAlmostEqual(summary['proxy_return'], -100.0)


class TestProxyAnalyser(unittest.TestCase):

    def _timeline(self, prices, cash):
        dates = pd.bdate_range('2024-01-08', periods=len(prices))
        shares = np.cumsum(np.asarray(cash, dtype=float) / np.asarray(prices, dtype=float))
        return pd.DataFrame({
            'date': dates,
            'price': prices,
            'cash_invested': cash,
            'cumulative_shares': shares,
            'valuation': shares * np.asarray(prices, dtype=float)
        })

    def test_deposits_do_not_count_as_returns(self):
        """
        CASE: 1,000 at 100, then price +10% on a day with another 1,000 deposit.
        Math: Organic end = 2,100 - 1,000 = 1,100 vs 1,000 prior close = +10%.
        """
        analyser = ProxyAnalyser(self._timeline([100.0, 110.0], [1000.0, 1000.0]))
        returns, wealth = analyser.get_adjusted_returns_and_index()
        self.assertAlmostEqual(returns.iloc[1], 0.10)
        self.assertAlmostEqual(wealth.iloc[-1], 1.10)

    def test_twrr_and_drawdown(self):
        """Math: +10% then -10% gives TWRR = 1.1 * 0.9 - 1 = -1%; Max DD = -10%."""
        summary = ProxyAnalyser(self._timeline([100.0, 110.0, 99.0], [1000.0, 0.0, 0.0])).get_summary()
        self.assertAlmostEqual(summary['Period_TWRR'], -0.01)
        self.assertAlmostEqual(summary['Max_DD'], -0.10)
        self.assertAlmostEqual(summary['Final_Value'], 990.0)
        self.assertGreater(summary['Volatility'], 0.0)

    def test_flat_curve(self):
        summary = ProxyAnalyser(self._timeline([50.0] * 5, [500.0, 0.0, 250.0, 0.0, 0.0])).get_summary()
        self.assertAlmostEqual(summary['Period_TWRR'], 0.0)
        self.assertAlmostEqual(summary['Max_DD'], 0.0)
        self.assertEqual(summary['Sharpe'], 0.0)

    def test_single_day_has_no_metrics(self):
        self.assertEqual(ProxyAnalyser(self._timeline([100.0], [1000.0])).get_summary(), {})

    def test_summary_table(self):
        table = ProxyAnalyser(self._timeline([100.0, 110.0], [1000.0, 0.0])).get_summary_table()
        self.assertEqual(list(table.index), ['Proxy Portfolio'])
        self.assertIn('Max_DD', table.columns)


if __name__ == '__main__':
    unittest.main()
