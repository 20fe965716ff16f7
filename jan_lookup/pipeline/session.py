# jan_lookup/pipeline/session.py
import asyncio
import logging
from enum import Enum
from typing import List, Optional, Sequence

from ..delegates.page_adapter import PageAdapter, PageHost
from ..models import (
    ExtractionError,
    HarnessError,
    HarnessPolicy,
    InjectionState,
    InputNotFoundError,
    PageLoadTimeoutError,
    ProductRecord,
    PromptMode,
    PromptText,
    SessionCancelled,
    SessionOutcome,
)
from .extractor import extract_records
from .injection import InjectionController
from .monitor import CompletionMonitor, MonitorResult
from .prompt_builder import build_prompt
from .scope import CancelScope

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "Idle"
    LOADING = "Loading page"
    SEARCHING = "Searching for input"
    WAITING = "Waiting for AI response"
    EXTRACTING = "Extracting"
    DONE = "Done"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class HarnessSession:
    """
    One complete prompt -> inject -> monitor -> extract life-cycle for one batch
    of codes against one page. The session owns its cancellation scope and all
    of its counters; close() stops every pending wait, and a closed session
    never hands back results.
    """
    def __init__(
        self,
        host: PageHost,
        codes: Sequence[str],
        policy: Optional[HarnessPolicy] = None,
        mode: Optional[PromptMode] = None,
        label: str = "session",
    ):
        self.host = host
        self.policy = policy or HarnessPolicy.from_config()
        self.label = label
        self.prompt: PromptText = build_prompt(codes, mode=mode)
        self.scope = CancelScope(label)
        self.adapter = PageAdapter(host, self.policy, sleep=self.scope.sleep)
        self.controller = InjectionController(self.adapter, self.policy, self.scope.sleep, on_status=self._set_detail)
        self.monitor: Optional[CompletionMonitor] = None
        self.phase = SessionPhase.IDLE
        self._detail = ""
        self._page_loaded = asyncio.Event()
        self._baseline_length = 0
        self.outcome: Optional[SessionOutcome] = None

    # --- Status ---

    @property
    def status(self) -> str:
        """Human-readable description of where the session currently is."""
        if self.phase is SessionPhase.SEARCHING and self._detail:
            return self._detail
        if self.phase is SessionPhase.DONE and self.outcome is not None:
            return f"Done: {len(self.outcome.records)} record(s)"
        if self.phase is SessionPhase.FAILED and self.outcome is not None and self.outcome.failure is not None:
            return f"Failed: {self.outcome.failure.message}"
        return self.phase.value

    def _set_phase(self, phase: SessionPhase):
        self.phase = phase
        logger.debug("[%s] %s", self.label, self.status)

    def _set_detail(self, detail: str):
        self._detail = detail
        logger.debug("[%s] %s", self.label, detail)

    # --- Host events ---

    def _on_page_load(self, url: str):
        if self.scope.cancelled:
            return
        if self.controller.on_page_loaded(url):
            self._page_loaded.set()

    def _on_console(self, text: str, level: str):
        if level == "error":
            logger.debug("[%s] page console error: %s", self.label, text)

    # --- Life-cycle ---

    async def run(self) -> SessionOutcome:
        self.host.add_page_load_listener(self._on_page_load)
        self.host.add_console_listener(self._on_console)
        try:
            async with self.scope:
                outcome = await self._run_steps()
        except SessionCancelled:
            self._set_phase(SessionPhase.CANCELLED)
            logger.info("[%s] Session cancelled, discarding its results.", self.label)
            raise
        except Exception as e:
            logger.error("[%s] Unexpected error: %s", self.label, e, exc_info=True)
            raise
        finally:
            self.host.remove_page_load_listener(self._on_page_load)
            self.host.remove_console_listener(self._on_console)
        # A close() that raced with the last await must still win.
        self.scope.check()
        return outcome

    async def _run_steps(self) -> SessionOutcome:
        self._set_phase(SessionPhase.LOADING)
        try:
            await self._load_page()
            await self._inject()
            result = await self._wait_for_answer()
            self._set_phase(SessionPhase.EXTRACTING)
            records = self._extract(result.text)
        except SessionCancelled:
            raise
        except HarnessError as e:
            return self._finish(failure=e)
        return self._finish(records=records, signal=result.signal)

    async def _load_page(self):
        await self.host.load_url(self.policy.page_url, int(self.policy.page_load_timeout * 1000))
        try:
            await self.scope.wait_for(self._page_loaded.wait(), timeout=self.policy.page_load_timeout)
        except asyncio.TimeoutError:
            raise PageLoadTimeoutError(f"{self.policy.page_url} did not finish loading")
        self._baseline_length = len(await self.adapter.read_page_text())
        logger.debug("[%s] Page loaded, baseline text length %d.", self.label, self._baseline_length)
        await self.scope.sleep(self.policy.initial_injection_delay)

    async def _inject(self):
        self._set_phase(SessionPhase.SEARCHING)
        state = await self.controller.start(self.prompt.text)
        if state is not InjectionState.COMPLETED:
            raise InputNotFoundError(
                f"input widget not found after {self.controller.attempts} attempt(s)",
                context={"attempts": self.controller.attempts},
            )

    async def _wait_for_answer(self) -> MonitorResult:
        self._set_phase(SessionPhase.WAITING)
        self.monitor = CompletionMonitor(self.adapter.read_page_text, self.policy, self.scope.sleep)
        return await self.monitor.wait_for_completion(self.prompt, self._baseline_length)

    def _extract(self, page_text: str) -> List[ProductRecord]:
        by_code = extract_records(page_text, self.prompt, self.policy.trailing_window)
        # Order follows the prompt; codes the AI skipped are left for the resolver to report.
        return [by_code[code] for code in self.prompt.codes if code in by_code]

    def _finish(
        self,
        records: Optional[List[ProductRecord]] = None,
        failure: Optional[HarnessError] = None,
        signal: Optional[str] = None,
    ) -> SessionOutcome:
        self.outcome = SessionOutcome(records=records or [], failure=failure, signal=signal)
        self._set_phase(SessionPhase.FAILED if failure else SessionPhase.DONE)
        self.outcome.status = self.status
        if failure is not None:
            logger.warning("[%s] %s", self.label, self.status)
        else:
            logger.info("[%s] %s (signal: %s)", self.label, self.status, signal)
        return self.outcome

    # --- Manual triggers ---

    async def retry_injection(self) -> InjectionState:
        """Manual retry after the automatic attempts gave up."""
        if self.controller.rearm():
            self._set_phase(SessionPhase.SEARCHING)
        return await self.controller.start(self.prompt.text)

    async def extract_now(self) -> SessionOutcome:
        """
        Degraded fallback after a monitor timeout: read whatever the page shows
        right now and try to extract from it.
        """
        self.scope.check()
        self._set_phase(SessionPhase.EXTRACTING)
        text = await self.adapter.read_page_text()
        self.scope.check()
        try:
            records = self._extract(text)
        except ExtractionError as e:
            return self._finish(failure=e)
        return self._finish(records=records, signal="manual")

    def close(self):
        """Tears the session down: every pending sleep and task is cancelled."""
        self.scope.cancel()
        if self.outcome is not None:
            logger.info("[%s] Closed. Outcome: %s", self.label, self.outcome.status)
        else:
            logger.info("[%s] Closed before finishing (%s).", self.label, self.phase.value)
