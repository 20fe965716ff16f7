# jan_lookup/pipeline/monitor.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..models import HarnessPolicy, MonitorSample, MonitorTimeoutError, PromptText
from .markers import MarkerProtocol, normalize_markers

logger = logging.getLogger(__name__)

SIGNAL_SENTINEL = "sentinel"
SIGNAL_END_MARKER = "end_marker"
SIGNAL_STABILITY = "stability"


@dataclass
class MonitorResult:
    text: str
    signal: str
    ticks: int
    elapsed: float


class CompletionMonitor:
    """
    Polls the page text until the AI's streamed answer is finished.

    Nothing is evaluated until the text has grown past the pre-response
    baseline. After that, each tick checks the configured marker signals and
    a stability counter (consecutive samples with unchanged length), whichever
    fires first ends the loop.
    """
    def __init__(
        self,
        read_text: Callable[[], Awaitable[str]],
        policy: HarnessPolicy,
        sleep: Callable[[float], Awaitable[Any]],
        clock: Optional[Callable[[], float]] = None,
    ):
        self._read_text = read_text
        self.policy = policy
        self._sleep = sleep
        self._clock = clock
        self.ticks = 0
        self.stable_count = 0
        self._previous_length: Optional[int] = None

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    async def _sample(self) -> MonitorSample:
        text = normalize_markers(await self._read_text() or "")
        return MonitorSample(text=text, length=len(text), timestamp=self._now())

    def _marker_signal(self, sample: MonitorSample, prompt: PromptText) -> Optional[str]:
        protocol = MarkerProtocol(sentinel=prompt.sentinel)
        for signal in self.policy.completion_signals:
            if signal == SIGNAL_SENTINEL:
                # The echoed prompt contributes its own sentinels; the AI adds exactly one.
                if protocol.count_sentinels(sample.text) == prompt.sentinel_count + 1:
                    return signal
            elif signal == SIGNAL_END_MARKER:
                if protocol.count_end_markers(sample.text) > prompt.end_marker_count:
                    return signal
            else:
                logger.warning("Unknown completion signal %r in policy, ignoring.", signal)
        return None

    def _update_stability(self, sample: MonitorSample) -> bool:
        if self._previous_length is not None and sample.length == self._previous_length:
            self.stable_count += 1
        else:
            self.stable_count = 0
        self._previous_length = sample.length
        return self.stable_count >= self.policy.stable_ticks_required

    async def wait_for_completion(self, prompt: PromptText, baseline_length: int) -> MonitorResult:
        started_at = self._now()
        threshold = baseline_length + self.policy.response_start_threshold
        response_started = False
        logger.info("Waiting for the AI response (baseline %d chars, timeout %.0fs)...", baseline_length, self.policy.monitor_timeout)

        while True:
            sample = await self._sample()
            self.ticks += 1
            elapsed = sample.timestamp - started_at

            if not response_started and sample.length >= threshold:
                response_started = True
                logger.debug("Response started at tick %d (%d chars).", self.ticks, sample.length)

            signal = None
            if response_started:
                signal = self._marker_signal(sample, prompt)
                stable = self._update_stability(sample)
                if signal is None and stable:
                    signal = SIGNAL_STABILITY
                logger.debug("Tick %d: %d chars, stable x%d, signal=%s", self.ticks, sample.length, self.stable_count, signal)
            else:
                logger.debug("Tick %d: %d chars, response not started yet", self.ticks, sample.length)

            if signal is not None:
                logger.info("Completion signal '%s' fired at tick %d (%.1fs).", signal, self.ticks, elapsed)
                await self._sleep(self.policy.settle_delay)
                final = await self._sample()
                return MonitorResult(text=final.text, signal=signal, ticks=self.ticks, elapsed=elapsed)

            if elapsed >= self.policy.monitor_timeout:
                logger.warning("No completion signal after %.1fs (%d ticks).", elapsed, self.ticks)
                raise MonitorTimeoutError(
                    f"AI response did not complete within {self.policy.monitor_timeout:.0f}s",
                    context={"ticks": self.ticks, "length": sample.length, "started": response_started},
                )

            await self._sleep(self.policy.poll_interval)
