# jan_lookup/pipeline/injection.py
import logging
from typing import Any, Awaitable, Callable, Optional

from ..models import HarnessPolicy, InjectionResult, InjectionState

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


class InjectionController:
    """
    Bounded-retry state machine around PageAdapter.inject().

    NOT_STARTED -> INJECTING -> COMPLETED | FAILED. Only one attempt loop runs at
    a time; start() while INJECTING is a no-op. A FAILED controller goes back to
    NOT_STARTED only through rearm() (the manual retry).

    An ambiguous PROCESSING result (prompt set, submit outcome not observable) is
    optimistically promoted to COMPLETED after a short grace delay. A submit that
    silently failed looks exactly like a slow one here; the completion monitor's
    timeout is what catches it.
    """
    def __init__(
        self,
        adapter,
        policy: HarnessPolicy,
        sleep: Callable[[float], Awaitable[Any]],
        on_status: Optional[StatusCallback] = None,
    ):
        self.adapter = adapter
        self.policy = policy
        self._sleep = sleep
        self._on_status = on_status
        self.state = InjectionState.NOT_STARTED
        self.attempts = 0
        self.last_result: Optional[InjectionResult] = None
        self._page_load_armed = False

    def _notify(self, message: str):
        if self._on_status:
            self._on_status(message)

    def on_page_loaded(self, url: str) -> bool:
        """
        Page-load trigger. Arms the controller once, only while NOT_STARTED and only
        for the target page. Returns True if this load should start injection.
        """
        if self.policy.page_url_marker not in (url or ""):
            logger.debug("Ignoring page load for non-target URL: %s", url)
            return False
        if self.state is not InjectionState.NOT_STARTED or self._page_load_armed:
            logger.debug("Ignoring repeated page load (%s, state=%s).", url, self.state.value)
            return False
        self._page_load_armed = True
        return True

    def rearm(self) -> bool:
        if self.state is not InjectionState.FAILED:
            logger.debug("rearm() ignored in state %s.", self.state.value)
            return False
        logger.info("Re-arming injection after failure (manual retry).")
        self.state = InjectionState.NOT_STARTED
        self.attempts = 0
        self.last_result = None
        return True

    async def start(self, prompt_text: str) -> InjectionState:
        if self.state is InjectionState.INJECTING:
            logger.debug("Injection already in flight, ignoring re-entrant trigger.")
            return self.state
        if self.state is not InjectionState.NOT_STARTED:
            logger.debug("start() ignored in terminal state %s.", self.state.value)
            return self.state

        self.state = InjectionState.INJECTING
        max_attempts = self.policy.max_injection_attempts
        while True:
            self.attempts += 1
            self._notify(f"Searching for input (attempt {self.attempts}/{max_attempts})")
            result = await self.adapter.inject(prompt_text)
            self.last_result = result
            logger.debug("Injection attempt %d/%d -> %s", self.attempts, max_attempts, result.value)

            if result in (InjectionResult.SUBMITTED, InjectionResult.FALLBACK_KEYPRESS):
                self.state = InjectionState.COMPLETED
                logger.info("Prompt injected and submitted on attempt %d (%s).", self.attempts, result.value)
                return self.state

            if result is InjectionResult.PROCESSING:
                await self._sleep(self.policy.submit_grace_delay)
                if self.state is InjectionState.INJECTING:
                    self.state = InjectionState.COMPLETED
                    logger.info("Submit result ambiguous on attempt %d, assuming it went through.", self.attempts)
                return self.state

            if self.attempts >= max_attempts:
                self.state = InjectionState.FAILED
                logger.warning("Input widget not found after %d attempts, giving up.", self.attempts)
                self._notify("Automatic input failed. Enter the prompt manually or retry.")
                return self.state

            logger.info("Input widget not found, retry %d/%d in %.1fs", self.attempts, max_attempts, self.policy.injection_retry_delay)
            await self._sleep(self.policy.injection_retry_delay)
