# jan_lookup/models/harness_models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .. import config
from .errors import HarnessError
from .product_models import ProductRecord


class PromptMode(str, Enum):
    SINGLE = "single"  # one JSON object
    ARRAY = "array"    # one JSON array, one element per code


class InjectionState(str, Enum):
    NOT_STARTED = "not_started"
    INJECTING = "injecting"
    COMPLETED = "completed"
    FAILED = "failed"


class InjectionResult(str, Enum):
    """What a single injection attempt observed in the page."""
    NOT_FOUND = "not_found"
    # Content was set, but whether the submit took effect can't be observed yet.
    PROCESSING = "processing"
    SUBMITTED = "submitted"
    FALLBACK_KEYPRESS = "fallback_keypress"


class SubmitOutcome(str, Enum):
    SENT = "sent"
    FALLBACK_KEYPRESS = "fallback_keypress"


@dataclass(frozen=True)
class PromptText:
    """The instruction text for one session. Never mutated after construction."""
    text: str
    codes: Tuple[str, ...]
    mode: PromptMode
    sentinel: str
    sentinel_count: int
    end_marker_count: int


@dataclass(frozen=True)
class WidgetRef:
    """Handle to an input widget found in the page: the selector plus its match index."""
    selector: str
    index: int
    kind: str  # "value" (textarea/input) or "editable" (contenteditable region)


@dataclass(frozen=True)
class MonitorSample:
    text: str
    length: int
    timestamp: float


@dataclass
class HarnessPolicy:
    """
    Page-specific policy: selector lists, delays and bounds. Everything the
    state machines need to be tuned for a different target page lives here.
    """
    page_url: str = config.AI_PAGE_URL
    page_url_marker: str = config.PAGE_URL_MARKER
    page_load_timeout: float = config.REQUEST_TIMEOUT / 1000
    max_batch_size: int = config.MAX_BATCH_SIZE
    initial_injection_delay: float = config.INITIAL_INJECTION_DELAY
    max_injection_attempts: int = config.MAX_INJECTION_ATTEMPTS
    injection_retry_delay: float = config.INJECTION_RETRY_DELAY
    submit_delay: float = config.SUBMIT_DELAY
    submit_grace_delay: float = config.SUBMIT_GRACE_DELAY
    input_selectors: List[str] = field(default_factory=lambda: list(config.INPUT_SELECTORS))
    submit_selectors: List[str] = field(default_factory=lambda: list(config.SUBMIT_SELECTORS))
    poll_interval: float = config.POLL_INTERVAL
    monitor_timeout: float = config.MONITOR_TIMEOUT
    response_start_threshold: int = config.RESPONSE_START_THRESHOLD
    stable_ticks_required: int = config.STABLE_TICKS_REQUIRED
    settle_delay: float = config.SETTLE_DELAY
    completion_signals: Tuple[str, ...] = config.COMPLETION_SIGNALS
    trailing_window: int = config.TRAILING_WINDOW

    @classmethod
    def from_config(cls, **overrides) -> "HarnessPolicy":
        """Snapshot of the config module, with single fields overridden."""
        return cls(**overrides)


@dataclass
class SessionOutcome:
    records: List[ProductRecord] = field(default_factory=list)
    failure: Optional[HarnessError] = None
    status: str = ""
    signal: Optional[str] = None  # which completion signal fired

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class ResolveResult:
    """One record per requested code (input order), plus per-code failures."""
    records: List[ProductRecord] = field(default_factory=list)
    failures: Dict[str, HarnessError] = field(default_factory=dict)
    from_store: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.records) - len(self.failures)

    @property
    def failed(self) -> int:
        return len(self.failures)
