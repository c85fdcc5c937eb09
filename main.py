"""
Index Benchmark Comparison Entry Point.

Answers the question "what if every deposit had bought the index fund
instead?". Coordinates ingestion of the broker transaction export and the
proxy price history, reconstruction of the simulated proxy timeline, and the
return comparison against the investor's reported portfolio value.

Implements a state-machine architecture to ensure data integrity across
execution steps, prohibiting the use of stale datasets. Manages user
interaction via a CLI and exports results to CSV.
"""
import os
import sys
import time
import pandas as pd
from typing import Callable

# --- Custom Module Imports ---
# dl: Parses raw broker and price exports.
# mdl: Downloads the proxy price history.
# pipe: Runs extraction, reconstruction and comparison.
from index_shadow import data_loader as dl
from index_shadow import market_data_loader as mdl
from index_shadow import pipeline as pipe
from index_shadow.config import DATA_DIR, RESULTS_DIR, PROXY_TICKER
from index_shadow.data_loader import RowParseError
from index_shadow.price_calendar import PriceLookupError
from index_shadow.portfolio_reconstructor import TimelineError

class BenchmarkComparisonApp:
    """
    Controls the proxy benchmark workflow.

    Manages application state, data flow between modules, and the interactive
    command-line interface. Enforces dependency chains so results are never
    computed from stale inputs.
    """
    def __init__(self) -> None:
        """
        Initializes application state.
        """
        # State flags.
        # None indicates the specific processing step has not occurred.
        self.transactions = None
        self.prices = None
        self.current_value = None
        self.results = None
        self.report_name = None

    def menu(self) -> None:
        """
        Displays the main menu and routes user input to pipeline steps.

        Maintains the event loop until an explicit exit command is received.
        """
        while True:
            self._print_header()
            print(" 0. RUN FULL PIPELINE")
            print(" 1. Load Transaction Export")
            print(" 2. Load Proxy Price History")
            print(" 3. Enter Current Portfolio Value")
            print(" 4. Run Comparison")
            print(" 5. Export Results")
            print()
            print(" Q. Quit")
            print("-" * 60)

            # Construct dynamic status indicator to track pipeline progress.
            flags = []
            flags.append("TRANSACTIONS: OK" if self.transactions is not None else "TRANSACTIONS: --")
            flags.append("PRICES: OK" if self.prices is not None else "PRICES: --")
            flags.append("VALUE: OK" if self.current_value is not None else "VALUE: --")
            flags.append("RESULT: OK" if self.results is not None else "RESULT: --")

            print(f" STATUS: {' | '.join(flags)}")
            print("-" * 60)

            choice = input(" >> Select Option: ").upper().strip()

            if choice == '0':
                self._reset_state()
                self.step_load_transactions()
                self.step_load_prices()
                self.step_enter_value()
                self.step_run_comparison()

            elif choice == '1':
                self.step_load_transactions()

            elif choice == '2':
                self.step_load_prices()

            elif choice == '3':
                self.step_enter_value()

            elif choice == '4':
                self.step_run_comparison()

            elif choice == '5':
                self.step_export()

            elif choice == 'Q':
                sys.exit()

            else:
                print(" [!] Invalid selection.")
                time.sleep(0.5)

    # =========================================================================
    # STEP 1: TRANSACTIONS
    # =========================================================================
    def step_load_transactions(self) -> None:
        """
        Ingests the broker transaction export and invalidates stale results.
        """
        self._print_section_header("STEP 1: TRANSACTION EXPORT")
        self.results = None

        path = self._select_file("transaction export")
        if path is None:
            return

        try:
            self.transactions = dl.load_transactions(path, verbose=True)
        except (FileNotFoundError, RowParseError) as e:
            print(f"\n [!] Error: {e}")
            time.sleep(0.5)
            return

        self.report_name = os.path.basename(path)
        print(f" [+] Transactions loaded.")

    # =========================================================================
    # STEP 2: PRICES
    # =========================================================================
    def step_load_prices(self) -> None:
        """
        Loads the proxy price history from a CSV export or downloads it.
        """
        self._print_section_header("STEP 2: PROXY PRICE HISTORY")
        self.results = None

        choice = input(f" >> [1] CSV export  [2] Download {PROXY_TICKER} [Default: 1]: ").strip()

        try:
            if choice == '2':
                start = None
                if self.transactions is not None:
                    start = self.transactions['activity_date'].min()
                self.prices = mdl.load_proxy_prices(PROXY_TICKER, start=start)
            else:
                path = self._select_file("price history")
                if path is None:
                    return
                self.prices = dl.load_prices(path, verbose=True)
        except (FileNotFoundError, RowParseError) as e:
            print(f"\n [!] Error: {e}")
            time.sleep(0.5)
            return

        print(f" [+] Price history loaded.")

    # =========================================================================
    # STEP 3: CURRENT VALUE
    # =========================================================================
    def step_enter_value(self) -> None:
        """
        Reads the investor's current total portfolio value.
        """
        self._print_section_header("STEP 3: CURRENT PORTFOLIO VALUE")
        self.results = None

        # Iterate until valid input is received.
        while True:
            raw = input(" >> Enter your current portfolio value: ").strip()
            value = dl.parse_currency(raw)
            if value is not None and value >= 0:
                self.current_value = value
                break
            print(" [!] Error: Please enter a non-negative amount (e.g. 12,345.67).")

    # =========================================================================
    # STEP 4: COMPARISON
    # =========================================================================
    def step_run_comparison(self) -> None:
        """
        Executes the reconstruction and comparison pipeline.
        """
        # --- Dependency Check ---
        self._check_dependency(self.transactions is not None, "Step 1 (Transactions)", self.step_load_transactions)
        self._check_dependency(self.prices is not None, "Step 2 (Prices)", self.step_load_prices)
        self._check_dependency(self.current_value is not None, "Step 3 (Current Value)", self.step_enter_value)
        if self.transactions is None or self.prices is None or self.current_value is None:
            return

        self._print_section_header("STEP 4: PROXY RECONSTRUCTION & COMPARISON")

        try:
            self.results = pipe.run_comparison(
                self.transactions,
                self.prices,
                self.current_value,
                verbose=True
            )
        except (TimelineError, PriceLookupError) as e:
            print(f"\n [!] Error: {e}")
            time.sleep(0.5)
            return

        self._print_summary()

    # =========================================================================
    # STEP 5: EXPORT
    # =========================================================================
    def step_export(self) -> None:
        """
        Saves the timeline, summary and diagnostics to a results folder.
        """
        self._check_dependency(self.results is not None, "Step 4 (Comparison)", self.step_run_comparison)
        if self.results is None:
            return

        self._print_section_header("STEP 5: EXPORT")

        input_tag = (self.report_name or 'Unknown').replace('.csv', '')
        output_dir = os.path.join(RESULTS_DIR, input_tag)
        os.makedirs(output_dir, exist_ok=True)

        self.results['timeline_result']['timeline'].to_csv(
            os.path.join(output_dir, 'proxy_timeline.csv'), index=False
        )

        if self.results['summary'] is not None:
            pd.Series(self.results['summary']).to_csv(
                os.path.join(output_dir, 'comparison_summary.csv'), header=['value']
            )

        extraction = self.results['extraction']
        for bucket in ('cancelled', 'unhandled', 'unknown'):
            if not extraction[bucket].empty:
                extraction[bucket].to_csv(os.path.join(output_dir, f'excluded_{bucket}.csv'), index=False)

        print(f" [+] All results saved to: {output_dir}")
        time.sleep(0.5)

    # =========================================================================
    # UTILITY FUNCTIONS
    # =========================================================================
    def _select_file(self, label: str) -> str | None:
        """
        Lets the user pick a CSV from DATA_DIR or type a path.

        Returns:
            str | None: The chosen path, or None if it does not exist.
        """
        files = []
        if os.path.exists(DATA_DIR):
            files = [f for f in os.listdir(DATA_DIR) if f.lower().endswith('.csv')]
            # Sort by modification time (newest first).
            files.sort(key=lambda x: os.path.getmtime(os.path.join(DATA_DIR, x)), reverse=True)

        path = None
        if files:
            print(f"\n Available files in '{DATA_DIR}':")
            print("   [0] Manual Path Entry")
            for idx, f in enumerate(files):
                print(f"   [{idx+1}] {f}")

            choice = input(f"\n >> Select {label} file number [Default: 1]: ").strip()
            if not choice:
                path = os.path.join(DATA_DIR, files[0])
            elif choice != '0':
                try:
                    path = os.path.join(DATA_DIR, files[int(choice) - 1])
                except (ValueError, IndexError):
                    print(" [!] Invalid selection.")
                    time.sleep(0.5)
                    return None

        if path is None:
            path = input(f" >> Enter path to {label} CSV: ").strip()

        if not os.path.exists(path):
            print(f"\n [!] Error: File not found at {path}")
            time.sleep(0.5)
            return None
        return path

    def _print_summary(self) -> None:
        """
        Renders the comparison summary and the diagnostics of excluded rows.
        """
        summary = self.results['summary']
        timeline_result = self.results['timeline_result']

        print("\n" + "-" * 60)
        if summary is None:
            print(f" [!] Comparison unavailable: {self.results['comparison_error']}")
            print(f"     - Proxy Final Value: {timeline_result['terminal_valuation']:,.2f}")
            return

        print(f"     - Period: {summary['start_date'].date()} to {summary['end_date'].date()} ({summary['years']:.2f} years)")
        print(f"     - Total Cash Invested: {summary['total_invested']:,.2f}")
        print(f"     - Your Portfolio:  {summary['end_value']:>14,.2f}  ({summary['portfolio_return']:+.2f}%, {summary['annualized_portfolio_return']:+.2f}% p.a.)")
        print(f"     - {PROXY_TICKER} Proxy:      {summary['proxy_end_value']:>14,.2f}  ({summary['proxy_return']:+.2f}%, {summary['annualized_proxy_return']:+.2f}% p.a.)")

        metrics = self.results['proxy_metrics']
        if metrics:
            print(f"     - Proxy Volatility: {metrics['Volatility']:.2%} | Max Drawdown: {metrics['Max_DD']:.2%}")

        if summary['beat_market']:
            print(f"\n [+] You beat the market by {summary['outperformance']:.2f} points.")
        else:
            print(f"\n [!] The market beat you by {abs(summary['outperformance']):.2f} points.")
        print("-" * 60)

    def _reset_state(self) -> None:
        """
        Clears loaded data and results so a full run never inherits stale data.
        """
        print("\n [!] Clearing previous application state...")
        time.sleep(0.5)

        self.transactions = None
        self.prices = None
        self.current_value = None
        self.results = None
        self.report_name = None

    def _print_section_header(self, title: str) -> None:
        """
        Displays formatted section header.

        Args:
            title (str): Header text.
        """
        print("\n" + "="*60)
        print(f" {title}")
        print("="*60 + "\n")

    def _check_dependency(self, condition: bool, fix_action_name: str, fix_action_func: Callable[[], None]) -> bool:
        """
        Enforces pipeline integrity by verifying prerequisites.

        If the condition is not met, flags the missing dependency and automatically
        triggers the corrective action.

        Args:
            condition (bool): Validity check (True if dependency is met).
            fix_action_name (str): Name of the missing step.
            fix_action_func (callable): Method to execute if condition is False.

        Returns:
            bool: True if dependency was already met, False if fix was triggered.
        """
        if not condition:
            print(f"\n [!] Missing dependency: {fix_action_name}")
            print(f" [>] Auto-triggering {fix_action_name}...")
            time.sleep(0.5)
            fix_action_func()
            return False
        return True

    def _print_header(self) -> None:
        """
        Renders main application title banner.
        """
        print("\n" + "#"*60)
        print("       INDEX FUND BENCHMARK COMPARISON")
        print("#"*60)

if __name__ == "__main__":
    app = BenchmarkComparisonApp()
    try:
        app.menu()
    except KeyboardInterrupt:
        print("\n [!] Interrupted by user. Exiting.")
