"""Fixed protocol constants for the Aladin Open API.

These values come from the upstream API contract (endpoint names, protocol
version, enum sets) or are operational limits of this server. They are not
user configuration; see ``config.py`` for that.
"""

# =============================================================================
# UPSTREAM API
# =============================================================================

API_BASE_URL = "http://www.aladin.co.kr/ttb/api"

SEARCH_PATH = "ItemSearch.aspx"
LOOKUP_PATH = "ItemLookUp.aspx"
LIST_PATH = "ItemList.aspx"

API_VERSION = "20070901"
OUTPUT_FORMAT = "JS"

# Daily call ceiling per TTB key
DAILY_LIMIT = 5000

# =============================================================================
# ENUM SETS
# =============================================================================

SEARCH_TARGETS = ("Book", "Foreign", "eBook", "Music", "DVD")
QUERY_TYPES = ("Title", "Author", "Publisher", "Keyword")
SORT_OPTIONS = ("Accuracy", "PublishTime", "Title", "SalesPoint", "CustomerRating")
COVER_SIZES = ("None", "Small", "MidBig", "Big")
OPT_RESULTS = ("authors", "fulldescription", "Toc", "Story", "categoryIdList")
LIST_QUERY_TYPES = (
    "Bestseller",
    "NewBook",
    "NewSpecial",
    "EditorChoice",
    "ItemNewAll",
    "ItemNewSpecial",
)
NEW_RELEASE_QUERY_TYPES = ("NewBook", "NewSpecial")

DEFAULT_SEARCH_TARGET = "Book"
DEFAULT_QUERY_TYPE = "Title"
DEFAULT_SORT = "Accuracy"
DEFAULT_COVER = "Small"
DEFAULT_START = 1
DEFAULT_MAX_RESULTS = 10

# =============================================================================
# VALIDATION BOUNDS
# =============================================================================

MIN_START = 1
MAX_START = 1000
MIN_MAX_RESULTS = 1
MAX_MAX_RESULTS = 50
MIN_CATEGORY_ID = 0
MAX_CATEGORY_ID = 99999
MIN_QUERY_LENGTH = 1
MAX_QUERY_LENGTH = 200
MIN_YEAR = 1900
MAX_ITEM_ID_LENGTH = 20
MIN_WEEK = 1
MAX_WEEK = 5

# =============================================================================
# HTTP
# =============================================================================

HTTP_TIMEOUT = 10.0  # seconds
MAX_RETRIES = 3
RETRY_DELAY = 1.0  # seconds
MAX_RETRY_DELAY = 8.0  # seconds
RETRY_MULTIPLIER = 2
RETRY_JITTER_RATIO = 0.1

USER_AGENT = "Aladin-MCP-Server/1.0.0"
HTTP_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/javascript, */*",
}

# =============================================================================
# CACHE
# =============================================================================

CACHE_KEY_PREFIX = "aladin_mcp"
SEARCH_TTL = 5 * 60  # seconds
LOOKUP_TTL = 30 * 60
LIST_TTL = 10 * 60
MAX_CACHE_SIZE = 1000

# =============================================================================
# RATE LIMITING
# =============================================================================

THROTTLE_BASE_INTERVAL = 0.2  # seconds
THROTTLE_BACKOFF_MULTIPLIER = 1.5
THROTTLE_MAX_BACKOFF = 5.0  # seconds
THROTTLE_WINDOW = 1.0  # seconds
THROTTLE_WINDOW_CALLS = 5

BURST_WINDOW = 1.0  # seconds
BURST_LIMIT = 10

HISTORY_WINDOW = 60.0  # seconds
USAGE_LOG_INTERVAL = 100  # calls
WARNING_THRESHOLD = 0.8
CRITICAL_THRESHOLD = 0.95

# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

BREAKER_THRESHOLD = 5
BREAKER_COOLDOWN = 60.0  # seconds
