# ==========================================
# 0. BENCHMARK SETTINGS
# ==========================================

PROXY_TICKER = 'VTI' # Vanguard Total Stock Market ETF

RISK_FREE_RATE = 0.0425 # US 3-Month Treasury Bill, Oct 2025

# Calendar-year length used to turn elapsed days into years (leap-year aware)
DAYS_PER_YEAR = 365.25

# Annualisation factor for daily volatility
TRADING_DAYS_PER_YEAR = 252

# ==========================================
# 1. TRANSACTION EXPORT (Robinhood CSV)
# ==========================================

TRANSACTION_COLUMNS = {
    'activity_date': 'Activity Date',
    'process_date': 'Process Date',
    'settle_date': 'Settle Date',
    'instrument': 'Instrument',
    'description': 'Description',
    'trans_code': 'Trans Code',
    'quantity': 'Quantity',
    'price': 'Price',
    'amount': 'Amount'
}

# ==========================================
# 2. PRICE HISTORY EXPORT (Investing.com CSV)
# ==========================================

PRICE_COLUMNS = {
    'date': 'Date',
    'price': 'Price',
    'open': 'Open',
    'high': 'High',
    'low': 'Low',
    'volume': 'Vol.',
    'change_percent': 'Change %'
}

# ==========================================
# 3. DEPOSIT CLASSIFICATION
# ==========================================

# Cash transfers in and out of the account
DEPOSIT_CODE = 'ACH'

# Description markers (compared case-insensitively, whitespace stripped)
DEPOSIT_MARKER = 'ACH Deposit'
CANCEL_MARKER = 'ACH Cancel'

# Codes that never represent new cash for the proxy model
IGNORED_CODES = {
    # --- Trades ---
    'Buy': 'Buy',
    'Sell': 'Sell',
    'BTO': 'Buy to Open',
    'STC': 'Sell to Close',
    'BCXL': 'Buy Cancel',
    'SCXL': 'Sell Cancel',
    'SLIP': 'Price Improvement',

    # --- Cash Income ---
    'INT': 'Interest',
    'CDIV': 'Cash Dividend',
    'REC': 'Receipt',

    # --- Fees & Taxes ---
    'AFEE': 'Account Fee',
    'DFEE': 'Dividend Fee',
    'DTAX': 'Dividend Tax',

    # --- Corporate Actions ---
    'SPL': 'Stock Split',
    'SPR': 'Stock Split Reversal',
    'SXCH': 'Stock Exchange',
    'SOFF': 'Settlement Offset',

    # --- Transfers & Margin ---
    'T/A': 'Transfer/Adjustment',
    'MRGC': 'Margin Call',
    'MRGS': 'Margin Sell',
    'FUTSWP': 'Future Swap',

    # --- Options ---
    'OCA': 'Option Assignment',
    'OEXP': 'Option Expiration'
}

# ==========================================
# 4. FILE LOCATIONS
# ==========================================

DATA_DIR = 'data'
RESULTS_DIR = 'results'
