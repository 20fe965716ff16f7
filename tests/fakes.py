# tests/fakes.py
# Fakes shared by the test modules: a scripted page host standing in for the
# Playwright page, and a zero-delay policy so state machines run instantly.

import json
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from jan_lookup.delegates.page_adapter import LOCATE_INPUT_JS, PAGE_TEXT_JS, SET_CONTENT_JS, SUBMIT_JS
from jan_lookup.models import HarnessPolicy

AI_URL = "https://www.perplexity.ai/"
HOME_TEXT = "Perplexity\nWhere knowledge begins\nAsk anything...\n"
SENTINEL_PATTERN = re.compile(r"\[\[END-[0-9a-f]{8}\]\]")


def fast_policy(**overrides) -> HarnessPolicy:
    values = dict(
        page_load_timeout=1.0,
        initial_injection_delay=0,
        injection_retry_delay=0,
        submit_delay=0,
        submit_grace_delay=0,
        poll_interval=0,
        monitor_timeout=5.0,
        settle_delay=0,
        stable_ticks_required=6,
    )
    values.update(overrides)
    return HarnessPolicy.from_config(**values)


def sentinel_of(prompt_text: str) -> str:
    return SENTINEL_PATTERN.search(prompt_text).group(0)


def answer_with(items_by_code: Dict[str, dict], drop: Sequence[str] = ()) -> Callable[[str], List[str]]:
    """
    Builds a well-behaved AI: it answers for every requested code it knows,
    in prompt order, then closes with the prompt's sentinel.
    """
    def answer(prompt_text: str) -> List[str]:
        requested = sorted(
            (code for code in items_by_code if code in prompt_text and code not in drop),
            key=prompt_text.index,
        )
        items = [dict(items_by_code[code], jan=code) for code in requested]
        payload = items[0] if len(items) == 1 and "JAN codes:" not in prompt_text else items
        return [
            "<DATA_START>\n",
            json.dumps(payload, ensure_ascii=False),
            "\n<DATA_END>\n" + sentinel_of(prompt_text),
        ]
    return answer


class FakePageHost:
    """
    Scripted stand-in for BrowserPageDelegate.

    Before submission the page shows HOME_TEXT. After submission it shows the
    echoed prompt followed by the chunks returned by ``answer(prompt_text)``,
    one more chunk per page-text read, which mimics a streamed response.
    """
    def __init__(
        self,
        answer: Optional[Callable[[str], List[str]]] = None,
        input_found_after: int = 0,
        submit_result: Any = "SENT",
    ):
        self.answer = answer or (lambda prompt: [])
        self.input_found_after = input_found_after
        self.submit_result = submit_result
        self.loaded_urls: List[str] = []
        self.injected: List[str] = []
        self.submits = 0
        self.locate_calls = 0
        self.text_reads = 0
        self._chunks: List[str] = []
        self._shown = 0
        self._submitted = False
        self._load_listeners = []
        self._console_listeners = []

    def add_page_load_listener(self, listener):
        self._load_listeners.append(listener)

    def remove_page_load_listener(self, listener):
        self._load_listeners.remove(listener)

    def add_console_listener(self, listener):
        self._console_listeners.append(listener)

    def remove_console_listener(self, listener):
        self._console_listeners.remove(listener)

    async def load_url(self, url, timeout=60000):
        self.loaded_urls.append(url)
        self._chunks = []
        self._shown = 0
        self._submitted = False
        for listener in list(self._load_listeners):
            listener(url)

    async def page_html(self):
        return f"<html><body><p>{HOME_TEXT}</p></body></html>"

    def _page_text(self) -> str:
        if not self._submitted:
            return HOME_TEXT
        if self._shown < len(self._chunks):
            self._shown += 1
        return HOME_TEXT + self.injected[-1] + "\n" + "".join(self._chunks[:self._shown])

    async def run_script(self, script, arg=None):
        if script == PAGE_TEXT_JS:
            self.text_reads += 1
            return self._page_text()
        if script == LOCATE_INPUT_JS:
            self.locate_calls += 1
            if self.locate_calls <= self.input_found_after:
                return None
            return {"selector": "textarea", "index": 0, "kind": "value"}
        if script == SET_CONTENT_JS:
            self.injected.append(arg[3])
            return True
        if script == SUBMIT_JS:
            self.submits += 1
            self._submitted = True
            self._chunks = list(self.answer(self.injected[-1]))
            if isinstance(self.submit_result, Exception):
                raise self.submit_result
            return self.submit_result
        raise AssertionError(f"unexpected script: {script[:40]!r}")
