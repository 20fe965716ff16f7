# jan_lookup/models/__init__.py

# This file makes the model classes directly available from the 'models' package.
# Instead of: from jan_lookup.models.product_models import ProductRecord
# We can now use: from jan_lookup.models import ProductRecord

from .product_models import ProductRecord, UNKNOWN_NAME
from .errors import (
    FailureReason,
    HarnessError,
    InputNotFoundError,
    PageLoadTimeoutError,
    PageScriptError,
    MonitorTimeoutError,
    ExtractionError,
    SessionCancelled,
)
from .harness_models import (
    PromptMode,
    InjectionState,
    InjectionResult,
    SubmitOutcome,
    PromptText,
    WidgetRef,
    MonitorSample,
    HarnessPolicy,
    SessionOutcome,
    ResolveResult,
)
