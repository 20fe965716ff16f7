"""
Unit tests for the page adapter.

Tests PageAdapter from jan_lookup/delegates/page_adapter.py against the
scripted FakePageHost, covering each injection outcome.
"""

import pytest

from fakes import FakePageHost, HOME_TEXT, fast_policy
from jan_lookup.delegates.page_adapter import PAGE_TEXT_JS, PageAdapter, html_to_text
from jan_lookup.models import InjectionResult, PageScriptError, SubmitOutcome, WidgetRef


class TestInject:
    @pytest.mark.asyncio
    async def test_not_found(self, policy):
        host = FakePageHost(input_found_after=1)
        assert await PageAdapter(host, policy).inject("hello") is InjectionResult.NOT_FOUND
        assert host.injected == []

    @pytest.mark.asyncio
    async def test_submitted(self, policy):
        host = FakePageHost()
        assert await PageAdapter(host, policy).inject("hello") is InjectionResult.SUBMITTED
        assert host.injected == ["hello"]
        assert host.submits == 1

    @pytest.mark.asyncio
    async def test_fallback_keypress(self, policy):
        host = FakePageHost(submit_result="KEYPRESS")
        assert await PageAdapter(host, policy).inject("hello") is InjectionResult.FALLBACK_KEYPRESS

    @pytest.mark.asyncio
    async def test_ambiguous_submit_is_processing(self, policy):
        host = FakePageHost(submit_result=PageScriptError("Execution context was destroyed"))
        assert await PageAdapter(host, policy).inject("hello") is InjectionResult.PROCESSING

    @pytest.mark.asyncio
    async def test_unexpected_submit_value_is_processing(self, policy):
        host = FakePageHost(submit_result=None)
        assert await PageAdapter(host, policy).inject("hello") is InjectionResult.PROCESSING

    @pytest.mark.asyncio
    async def test_waits_submit_delay_between_set_and_submit(self):
        delays = []

        async def sleep(delay):
            delays.append(delay)

        adapter = PageAdapter(FakePageHost(), fast_policy(submit_delay=0.5), sleep=sleep)
        await adapter.inject("hello")
        assert delays == [0.5]


class TestOperations:
    @pytest.mark.asyncio
    async def test_locate_input_returns_widget_ref(self, policy):
        widget = await PageAdapter(FakePageHost(), policy).locate_input()
        assert widget == WidgetRef(selector="textarea", index=0, kind="value")

    @pytest.mark.asyncio
    async def test_try_submit(self, policy):
        adapter = PageAdapter(FakePageHost(), policy)
        widget = WidgetRef(selector="textarea", index=0, kind="value")
        assert await adapter.try_submit(widget) is SubmitOutcome.SENT

    @pytest.mark.asyncio
    async def test_selector_lists_come_from_policy(self, policy):
        seen = []

        class RecordingHost(FakePageHost):
            async def run_script(self, script, arg=None):
                seen.append(arg)
                return await super().run_script(script, arg)

        policy.input_selectors = ["#custom-editor"]
        await PageAdapter(RecordingHost(), policy).locate_input()
        assert seen == [["#custom-editor"]]


class TestReadPageText:
    @pytest.mark.asyncio
    async def test_inner_text(self, policy):
        assert await PageAdapter(FakePageHost(), policy).read_page_text() == HOME_TEXT

    @pytest.mark.asyncio
    async def test_falls_back_to_html(self, policy):
        class BrokenScriptHost(FakePageHost):
            async def run_script(self, script, arg=None):
                if script == PAGE_TEXT_JS:
                    raise PageScriptError("Target closed")
                return await super().run_script(script, arg)

        text = await PageAdapter(BrokenScriptHost(), policy).read_page_text()
        assert "Where knowledge begins" in text


def test_html_to_text_drops_scripts():
    html = "<html><head><script>var x = '<DATA_START>';</script></head><body><p>Hello</p><style>p{}</style></body></html>"
    text = html_to_text(html)
    assert "Hello" in text
    assert "DATA_START" not in text


def test_html_to_text_empty():
    assert html_to_text("") == ""
