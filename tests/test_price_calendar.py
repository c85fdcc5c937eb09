import unittest
import pandas as pd

from index_shadow.price_calendar import PriceCalendar, PriceLookupError


class TestPriceCalendar(unittest.TestCase):

    def setUp(self):
        """
        One trading week with the weekend and MLK Day (2024-01-15) absent.
        Input deliberately unsorted.
        """
        dates = ['2024-01-10', '2024-01-08', '2024-01-09', '2024-01-11', '2024-01-12', '2024-01-16']
        self.prices = pd.DataFrame({
            'date': pd.to_datetime(dates),
            'price': [102.0, 100.0, 101.0, 103.0, 104.0, 105.0]
        })
        self.calendar = PriceCalendar(self.prices)

    def test_exact_match(self):
        record = self.calendar.price_on('2024-01-09')
        self.assertEqual(record['price'], 101.0)

    def test_weekend_and_holiday_have_no_price(self):
        for day in ['2024-01-13', '2024-01-14', '2024-01-15']:
            self.assertIsNone(self.calendar.price_on(day))
            self.assertFalse(self.calendar.is_trading_day(day))

    def test_outside_range_has_no_price(self):
        self.assertIsNone(self.calendar.price_on('2023-12-31'))
        self.assertIsNone(self.calendar.price_on('2024-02-01'))

    def test_time_of_day_is_ignored(self):
        record = self.calendar.price_on(pd.Timestamp('2024-01-12 15:45'))
        self.assertEqual(record['price'], 104.0)

    def test_lookup_never_returns_another_date(self):
        """Every civil day either misses or returns a record for that same day."""
        for day in pd.date_range('2024-01-01', '2024-01-31', freq='D'):
            record = self.calendar.price_on(day)
            if record is not None:
                self.assertEqual(record['date'], day)

    def test_require_fails_with_the_date(self):
        with self.assertRaises(PriceLookupError) as ctx:
            self.calendar.require('2024-01-13', context='valuation date')
        self.assertIsInstance(ctx.exception, KeyError)
        self.assertIn('2024-01-13', str(ctx.exception))
        self.assertIn('valuation date', str(ctx.exception))

    def test_sorted_bounds(self):
        self.assertEqual(len(self.calendar), 6)
        self.assertEqual(self.calendar.first_date, pd.Timestamp('2024-01-08'))
        self.assertEqual(self.calendar.last_date, pd.Timestamp('2024-01-16'))
        self.assertTrue(self.calendar.dates.is_monotonic_increasing)

    def test_duplicated_dates_are_rejected(self):
        dupes = pd.DataFrame({
            'date': pd.to_datetime(['2024-01-08', '2024-01-08']),
            'price': [100.0, 101.0]
        })
        with self.assertRaises(ValueError):
            PriceCalendar(dupes)

    def test_source_frame_is_not_modified(self):
        self.assertEqual(self.prices['date'].iloc[0], pd.Timestamp('2024-01-10'))

    def test_empty_calendar(self):
        calendar = PriceCalendar(pd.DataFrame({'date': pd.to_datetime([]), 'price': []}))
        self.assertTrue(calendar.empty)
        self.assertIsNone(calendar.price_on('2024-01-08'))
        self.assertIsNone(calendar.first_date)


if __name__ == '__main__':
    unittest.main()
