# jan_lookup/config.py

# Import the 'Path' object for handling file paths in a way that works on any OS (Windows, macOS, Linux)
from pathlib import Path

# --- Core Settings ---
# The conversational AI page we drive to look up unknown product codes.
AI_PAGE_URL = "https://www.perplexity.ai/"
# Page-load events for URLs that don't contain this marker are ignored (redirects, consent pages, ...).
PAGE_URL_MARKER = "perplexity.ai"

# --- File Path Settings ---
# The directory where this config.py file is located (the 'jan_lookup' package).
PACKAGE_PATH = Path(__file__).parent
# All local data (the product master JSON, exports) lives in 'data' next to the package.
DATA_PATH = PACKAGE_PATH.parent / "data"
# The local product store that is consulted before going to the AI page.
PRODUCT_STORE_PATH = DATA_PATH / "product_master.json"

# --- Browser/Network Settings ---
# A mobile User-Agent. The AI page serves its lighter mobile UI to it, which has fewer popups.
USER_AGENT = "Mozilla/5.0 (Linux; Android 10) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
# The size of the virtual browser window (a typical phone screen).
VIEWPORT = {"width": 412, "height": 915}
# The maximum time (in milliseconds) to wait for a page to load before giving up.
REQUEST_TIMEOUT = 60000 # 60 seconds

# --- Batch Settings ---
# Codes shorter than this (or containing non-digits) are rejected before lookup.
MIN_CODE_LENGTH = 8
# The maximum number of codes sent to the AI in one prompt.
MAX_BATCH_SIZE = 10

# --- Injection Settings ---
# Seconds to wait after the page finished loading before the first injection attempt.
INITIAL_INJECTION_DELAY = 3.0
# How many times we look for the input widget before giving up.
MAX_INJECTION_ATTEMPTS = 5
# Seconds between two injection attempts when the input widget was not found.
INJECTION_RETRY_DELAY = 2.0
# Seconds between setting the prompt and clicking submit (lets the page enable its send button).
SUBMIT_DELAY = 0.5
# Seconds to wait before treating an ambiguous submit result as a success.
SUBMIT_GRACE_DELAY = 1.0

# Input widget selectors, most specific first. The first match wins.
INPUT_SELECTORS = [
    '#ask-input[contenteditable="true"]',
    'div[contenteditable="true"][data-lexical-editor="true"]',
    'textarea[placeholder*="Ask"]',
    'textarea[placeholder*="anything"]',
    'textarea',
    'div[contenteditable="true"]',
    'input[type="text"]',
]

# Submit control selectors, most specific first. Only visible, enabled buttons are clicked.
SUBMIT_SELECTORS = [
    'button[data-testid="submit-button"]',
    'button[aria-label*="Submit"]',
    'button[aria-label*="Send"]',
    'button[type="submit"]',
]

# --- Completion Monitor Settings ---
# Seconds between two samples of the page text.
POLL_INTERVAL = 1.5
# Seconds after submission before we give up waiting for the AI.
MONITOR_TIMEOUT = 60.0
# The page text must grow by at least this many characters before we consider the AI to be answering.
RESPONSE_START_THRESHOLD = 100
# Consecutive unchanged samples that count as "generation finished".
STABLE_TICKS_REQUIRED = 6
# Seconds to wait after a completion signal before taking the final snapshot.
SETTLE_DELAY = 1.0
# Completion signals checked on every tick, in order. Stability is always checked as well.
#   sentinel:   the AI emitted the per-session sentinel token
#   end_marker: an end marker appeared beyond the ones the prompt itself contains
COMPLETION_SIGNALS = ("sentinel", "end_marker")

# --- Extraction Settings ---
# The delimiters the AI is asked to wrap its JSON in.
DATA_START_MARKER = "<DATA_START>"
DATA_END_MARKER = "<DATA_END>"
# Sentinel tokens look like [[END-1a2b3c4d]]. The prefix doubles as the "bare opening bracket" boundary.
SENTINEL_PREFIX = "[[END-"
SENTINEL_SUFFIX = "]]"
# When no boundary can be found, only the tail of the page text is searched for the payload.
TRAILING_WINDOW = 10000
