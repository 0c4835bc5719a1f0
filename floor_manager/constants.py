# floor_manager/constants.py
APP_NAME = "FloorManager Pro"

DATA_DIR = "data"
DB_FILE_NAME = "floor_manager.json"
STORAGE_NAMESPACE = "FLOOR_MANAGER_DB"

# ---------- Cargo statuses ----------
STATUS_PREORDER = 1
STATUS_AT_CLIENT_DEBT = 7
STATUS_AT_CLIENT_PAID = 8

# ---------- Ledger thresholds ----------
DEBT_EPSILON = "0.01"
DISCOUNT_EPSILON = "0.005"

# ---------- Invoices ----------
INVOICE_PREFIX = "№ "
INVOICE_PAD = 4

# ---------- Lists / reports ----------
TOP_N = 5
DEFAULT_PAGE_SIZE = 20
CLIENT_SUGGEST_LIMIT = 8
RECONCILIATION_CLIENT_LIMIT = 50

# Note written onto an order once its debt is settled in full.
PAID_NOTE = "Status: у клиента"
