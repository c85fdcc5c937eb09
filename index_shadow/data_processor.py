import pandas as pd
from typing import Dict, Any
from .config import DEPOSIT_CODE, DEPOSIT_MARKER, CANCEL_MARKER, IGNORED_CODES

def extract_deposits(transactions: pd.DataFrame, verbose: bool = False) -> Dict[str, Any]:
    """
    Isolates the genuine cash contributions from the normalised transaction log.

    The proxy model only tracks cash deposits converted into a single index
    fund, so everything else in the log (trades, fees, dividends, corporate
    actions) is excluded. Nothing is dropped without trace: every excluded row
    lands in one of the diagnostic buckets returned alongside the deposits.

    Classification Policy:
    1. Deposit code + deposit marker + positive amount: counted.
    2. Deposit code + cancellation marker: skipped. Cancellations are NOT
       netted against the deposit they reverse; the rows are surfaced in
       'cancelled' so the gap stays visible.
    3. Deposit code + anything else (withdrawals, negative amounts): not
       modelled, surfaced in 'unhandled'.
    4. Known non-deposit codes: excluded, surfaced in 'ignored'.
    5. Unrecognised codes: excluded, surfaced in 'unknown' / 'unknown_codes'.

    Same-day deposits are NOT merged here; the Timeline Builder sums them.

    Args:
        transactions (pd.DataFrame): Output of `normalize_transactions`.
        verbose (bool): Prints the classification summary when True.

    Returns:
        Dict[str, Any]: Keys 'deposits' (date, amount), 'total_invested',
        'cancelled', 'unhandled', 'ignored', 'unknown', 'unknown_codes'.
    """
    # Copy to avoid side-effects on the caller's frame
    df = transactions.copy()

    codes = df['trans_code'].astype(str).str.strip()
    descriptions = df['description'].astype(str).str.strip().str.lower()

    # --- 1. Build Classification Masks ---
    is_deposit_code = codes == DEPOSIT_CODE
    is_deposit_marker = descriptions == DEPOSIT_MARKER.lower()
    is_cancel_marker = descriptions == CANCEL_MARKER.lower()

    mask_counted = is_deposit_code & is_deposit_marker & (df['amount'] > 0)
    mask_cancelled = is_deposit_code & is_cancel_marker
    mask_unhandled = is_deposit_code & ~mask_counted & ~mask_cancelled
    mask_ignored = codes.isin(list(IGNORED_CODES))
    mask_unknown = ~is_deposit_code & ~mask_ignored

    # --- 2. Deposit Sequence ---
    # Stable sort keeps same-day deposits in log order.
    deposits = df.loc[mask_counted, ['activity_date', 'amount']].rename(columns={'activity_date': 'date'})
    deposits = deposits.sort_values(by='date', kind='mergesort').reset_index(drop=True)
    total_invested = float(deposits['amount'].sum())

    # --- 3. Diagnostic Buckets ---
    cancelled = df.loc[mask_cancelled].reset_index(drop=True)
    unhandled = df.loc[mask_unhandled].reset_index(drop=True)
    ignored = df.loc[mask_ignored].reset_index(drop=True)
    unknown = df.loc[mask_unknown].reset_index(drop=True)
    unknown_codes = codes[mask_unknown].value_counts().to_dict()

    # --- 4. Console Summary ---
    if verbose:
        print(" [>] Classifying cash flows...")
        print(f"     - Deposits counted: {len(deposits)} (total {total_invested:,.2f})")
        if not cancelled.empty:
            print(f" [!] Warning: {len(cancelled)} deposit cancellations skipped (not netted).")
        if not unhandled.empty:
            print(f" [!] Warning: {len(unhandled)} {DEPOSIT_CODE} rows not modelled (withdrawals/other).")
        print(f"     - Ignored (trades, fees, income, corporate actions): {len(ignored)}")
        for code, count in unknown_codes.items():
            print(f" [!] Warning: Unknown transaction type '{code}' ({count} rows).")

    return {
        'deposits': deposits,
        'total_invested': total_invested,
        'cancelled': cancelled,
        'unhandled': unhandled,
        'ignored': ignored,
        'unknown': unknown,
        'unknown_codes': unknown_codes
    }
