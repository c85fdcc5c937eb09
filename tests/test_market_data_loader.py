import unittest
from unittest.mock import MagicMock, patch
import pandas as pd

from index_shadow.data_loader import PRICE_FIELDS, RowParseError
from index_shadow.market_data_loader import load_proxy_prices


def _history():
    """Friday and Monday sessions as yfinance returns them (tz-aware index)."""
    index = pd.DatetimeIndex(['2024-01-05', '2024-01-08'], tz='America/New_York', name='Date')
    return pd.DataFrame({
        'Open': [230.0, 232.0],
        'High': [233.0, 236.0],
        'Low': [229.0, 231.5],
        'Close': [232.0, 235.48],
        'Adj Close': [231.0, 234.5],
        'Volume': [3100000, 2900000]
    }, index=index)


class TestProxyDownload(unittest.TestCase):

    @patch('index_shadow.market_data_loader.yf.Ticker')
    def test_history_is_reshaped_to_price_schema(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _history()

        prices = load_proxy_prices('VTI', start='2024-01-05', end='2024-01-08', verbose=False)

        self.assertEqual(list(prices.columns), PRICE_FIELDS)
        self.assertEqual(prices['date'].tolist(), [pd.Timestamp('2024-01-05'), pd.Timestamp('2024-01-08')])
        self.assertIsNone(prices['date'].dt.tz)
        self.assertEqual(prices['price'].tolist(), [232.0, 235.48])
        self.assertEqual(prices['change_percent'].iloc[0], '')
        self.assertEqual(prices['change_percent'].iloc[1], '1.50%')

    @patch('index_shadow.market_data_loader.yf.Ticker')
    def test_calendar_stays_sparse(self, mock_ticker):
        """No forward-fill: the weekend between the two sessions stays absent."""
        mock_ticker.return_value.history.return_value = _history()
        prices = load_proxy_prices('VTI', start='2024-01-05', end='2024-01-08', verbose=False)
        self.assertNotIn(pd.Timestamp('2024-01-06'), prices['date'].tolist())
        self.assertEqual(len(prices), 2)

    @patch('index_shadow.market_data_loader.yf.Ticker')
    def test_end_date_is_inclusive(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _history()
        load_proxy_prices('VTI', start='2024-01-05', end='2024-01-08', verbose=False)
        _, kwargs = mock_ticker.return_value.history.call_args
        self.assertEqual(kwargs['end'], pd.Timestamp('2024-01-09'))

    @patch('index_shadow.market_data_loader.time.sleep')
    @patch('index_shadow.market_data_loader.yf.Ticker')
    def test_empty_download_fails_after_retries(self, mock_ticker, mock_sleep):
        mock_ticker.return_value.history.return_value = pd.DataFrame()

        with self.assertRaises(RowParseError):
            load_proxy_prices('VTI', max_retries=3, verbose=False)

        self.assertEqual(mock_ticker.return_value.history.call_count, 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [5, 10])

    @patch('index_shadow.market_data_loader.time.sleep')
    @patch('index_shadow.market_data_loader.yf.Ticker')
    def test_network_error_is_retried(self, mock_ticker, mock_sleep):
        history = MagicMock(side_effect=[ConnectionError("timeout"), _history()])
        mock_ticker.return_value.history = history

        prices = load_proxy_prices('VTI', max_retries=3, verbose=False)

        self.assertEqual(len(prices), 2)
        mock_sleep.assert_called_once_with(5)


if __name__ == '__main__':
    unittest.main()
