"""
Unit tests for completion detection.

Tests CompletionMonitor from jan_lookup/pipeline/monitor.py with a simulated
page whose text is scripted per tick.
"""

import asyncio

import pytest

from fakes import fast_policy
from jan_lookup.models import MonitorTimeoutError
from jan_lookup.pipeline.markers import MarkerProtocol
from jan_lookup.pipeline.monitor import CompletionMonitor
from jan_lookup.pipeline.prompt_builder import build_prompt

SENTINEL = "[[END-0badc0de]]"
BASELINE = 1000


class ScriptedPage:
    """Returns the scripted texts in order, then keeps returning the last one."""
    def __init__(self, texts):
        self.texts = list(texts)
        self.reads = 0

    async def read(self):
        text = self.texts[min(self.reads, len(self.texts) - 1)]
        self.reads += 1
        return text


class TickClock:
    """Advances a fixed step per reading, like real polling at a fixed interval."""
    def __init__(self, step):
        self.step = step
        self.now = 0.0

    def __call__(self):
        self.now += self.step
        return self.now


async def no_sleep(delay):
    await asyncio.sleep(0)


@pytest.fixture
def prompt():
    return build_prompt(["4901234567890"], protocol=MarkerProtocol(sentinel=SENTINEL))


def filler(length):
    return "x" * length


class TestStability:
    @pytest.mark.asyncio
    async def test_fires_five_ticks_after_text_stops_changing(self, prompt):
        # Grows on ticks 1-3, unchanged from tick 4 on
        page = ScriptedPage([filler(1200), filler(1300), filler(1400)])
        policy = fast_policy(stable_ticks_required=5)
        monitor = CompletionMonitor(page.read, policy, no_sleep)

        result = await monitor.wait_for_completion(prompt, BASELINE)

        assert result.signal == "stability"
        assert result.ticks == 8

    @pytest.mark.asyncio
    async def test_no_evaluation_before_response_starts(self, prompt):
        # The page never grows past baseline + threshold, so stability never counts
        page = ScriptedPage([filler(BASELINE + 50)])
        policy = fast_policy(stable_ticks_required=2, monitor_timeout=10.0)
        monitor = CompletionMonitor(page.read, policy, no_sleep, clock=TickClock(1.5))

        with pytest.raises(MonitorTimeoutError):
            await monitor.wait_for_completion(prompt, BASELINE)
        assert monitor.stable_count == 0


class TestMarkerSignals:
    @pytest.mark.asyncio
    async def test_sentinel_from_ai_fires(self, prompt):
        echo = prompt.text
        page = ScriptedPage([
            filler(1200) + echo,
            filler(1200) + echo + "<DATA_START>{...",
            filler(1200) + echo + '<DATA_START>{"name": "a"}' + "\n" + SENTINEL,
        ])
        monitor = CompletionMonitor(page.read, fast_policy(completion_signals=("sentinel",)), no_sleep)

        result = await monitor.wait_for_completion(prompt, BASELINE)

        assert result.signal == "sentinel"
        assert result.ticks == 3

    @pytest.mark.asyncio
    async def test_echoed_sentinel_alone_does_not_fire(self, prompt):
        page = ScriptedPage([filler(1200) + prompt.text + filler(n) for n in range(1, 20)])
        policy = fast_policy(completion_signals=("sentinel",), stable_ticks_required=3)
        monitor = CompletionMonitor(page.read, policy, no_sleep)

        result = await monitor.wait_for_completion(prompt, BASELINE)

        # Only stability can end it, three ticks after the text stops growing at tick 19
        assert result.signal == "stability"
        assert result.ticks == 22

    @pytest.mark.asyncio
    async def test_end_marker_beyond_prompt_fires(self, prompt):
        echo = prompt.text
        page = ScriptedPage([
            filler(1200) + echo + "<DATA_START>",
            filler(1200) + echo + '<DATA_START>{"name": "a"}<DATA_END>',
        ])
        monitor = CompletionMonitor(page.read, fast_policy(completion_signals=("end_marker",)), no_sleep)

        result = await monitor.wait_for_completion(prompt, BASELINE)

        assert result.signal == "end_marker"
        assert result.ticks == 2

    @pytest.mark.asyncio
    async def test_final_snapshot_is_taken_after_settle(self, prompt):
        done = filler(1200) + prompt.text + "<DATA_END>"
        page = ScriptedPage([done, done + " trailing paint"])
        settle_delays = []

        async def sleep(delay):
            settle_delays.append(delay)

        policy = fast_policy(completion_signals=("end_marker",), settle_delay=0.5)
        result = await CompletionMonitor(page.read, policy, sleep).wait_for_completion(prompt, BASELINE)

        assert result.text.endswith("trailing paint")
        assert settle_delays == [0.5]


class TestTimeout:
    @pytest.mark.asyncio
    async def test_times_out_without_signal(self, prompt):
        page = ScriptedPage([filler(1200 + n) for n in range(100)])
        policy = fast_policy(monitor_timeout=6.0, poll_interval=1.5)
        monitor = CompletionMonitor(page.read, policy, no_sleep, clock=TickClock(1.5))

        with pytest.raises(MonitorTimeoutError) as exc:
            await monitor.wait_for_completion(prompt, BASELINE)
        assert exc.value.retryable
        assert exc.value.context["started"] is True
