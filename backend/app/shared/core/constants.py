"""
Centralized Constants for the Column Trigger Backend.
All hardcoded values should be defined here for easy maintenance.
"""

# ============================================
# API TIMEOUTS (in seconds)
# ============================================
TIMEOUT_WHATSAPP_SEND = 30.0          # Single text message send

# ============================================
# SHARED HTTP CLIENT POOL
# ============================================
HTTP_TIMEOUT_SECONDS = 30.0
HTTP_CONNECT_TIMEOUT_SECONDS = 10.0
HTTP_MAX_CONNECTIONS = 100
HTTP_MAX_KEEPALIVE_CONNECTIONS = 20
HTTP_KEEPALIVE_EXPIRY_SECONDS = 30.0

# ============================================
# WHATSAPP GATEWAY
# ============================================
WHATSAPP_CHAT_ID_SUFFIX = "@c.us"     # Individual chat id suffix
WHATSAPP_CONNECTED_STATUS = "conectado"
BLOCKED_CONTACT_ERROR = "Contact blocked from bot"

# ============================================
# DISPATCH RETRY (HTTP level, per send attempt)
# ============================================
MAX_SEND_ATTEMPTS = 3
SEND_RETRY_MIN_WAIT_SECONDS = 2
SEND_RETRY_MAX_WAIT_SECONDS = 10

# ============================================
# SCHEDULING
# ============================================
MILLISECONDS_PER_HOUR = 60 * 60 * 1000
MAX_DELAY_HOURS = 24 * 365            # Longest accepted trigger delay (one year)

# ============================================
# PAGINATION
# ============================================
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

# ============================================
# DATABASE POOL SETTINGS
# ============================================
DB_POOL_SIZE = 5
DB_MAX_OVERFLOW = 10
DB_POOL_RECYCLE = 300
