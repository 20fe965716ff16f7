# jan_lookup/delegates/page_adapter.py
import logging
from typing import Any, Callable, Optional, Protocol

from lxml import html as lxml_html
from lxml.etree import ParserError

from ..models import HarnessPolicy, InjectionResult, PageScriptError, SubmitOutcome, WidgetRef

logger = logging.getLogger(__name__)


class PageHost(Protocol):
    """The host capabilities the adapter relies on. BrowserPageDelegate implements them with Playwright."""

    async def load_url(self, url: str, timeout: int = 60000): ...

    async def run_script(self, script: str, arg: Any = None) -> Any: ...

    async def page_html(self) -> str: ...

    def add_page_load_listener(self, listener: Callable[[str], None]): ...

    def remove_page_load_listener(self, listener: Callable[[str], None]): ...

    def add_console_listener(self, listener: Callable[[str, str], None]): ...

    def remove_console_listener(self, listener: Callable[[str, str], None]): ...


# Each script is a function expression; Playwright passes the second evaluate() argument to it.

LOCATE_INPUT_JS = """
(selectors) => {
    for (const selector of selectors) {
        const matches = document.querySelectorAll(selector);
        for (let i = 0; i < matches.length; i++) {
            const el = matches[i];
            if (el.disabled || el.readOnly) continue;
            const rect = el.getBoundingClientRect();
            if (rect.width === 0 && rect.height === 0) continue;
            const kind = (el.tagName === 'TEXTAREA' || el.tagName === 'INPUT') ? 'value' : 'editable';
            console.log('Found input with selector: ' + selector);
            return {selector: selector, index: i, kind: kind};
        }
    }
    return null;
}
"""

SET_CONTENT_JS = """
([selector, index, kind, text]) => {
    const el = document.querySelectorAll(selector)[index];
    if (!el) return false;
    el.focus();
    if (kind === 'value') {
        const proto = el.tagName === 'TEXTAREA' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
        const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
        try { el.select(); } catch (e) {}
        // The native setter bypasses framework-managed value properties so the change is noticed.
        setter.call(el, '');
        setter.call(el, text);
        el.dispatchEvent(new Event('input', {bubbles: true}));
        el.dispatchEvent(new Event('change', {bubbles: true}));
        return el.value === text;
    }
    let cleared = false;
    try {
        document.execCommand('selectAll', false, null);
        cleared = document.execCommand('delete', false, null);
    } catch (e) {}
    if (!cleared) el.textContent = '';
    let inserted = false;
    try {
        inserted = document.execCommand('insertText', false, text);
    } catch (e) {}
    if (!inserted || !el.innerText.trim()) {
        el.textContent = text;
    }
    el.dispatchEvent(new InputEvent('input', {bubbles: true, inputType: 'insertText', data: text}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
    return el.innerText.trim().length > 0;
}
"""

SUBMIT_JS = """
([submitSelectors, inputSelector, inputIndex]) => {
    for (const selector of submitSelectors) {
        const buttons = document.querySelectorAll(selector);
        for (const btn of buttons) {
            if (!btn || btn.disabled || btn.getAttribute('aria-disabled') === 'true') continue;
            const rect = btn.getBoundingClientRect();
            if (rect.width === 0 && rect.height === 0) continue;
            console.log('Clicking submit button: ' + selector);
            btn.click();
            return 'SENT';
        }
    }
    const input = document.querySelectorAll(inputSelector)[inputIndex];
    if (!input) return 'NO_INPUT';
    input.focus();
    const init = {key: 'Enter', code: 'Enter', keyCode: 13, which: 13, bubbles: true, cancelable: true};
    input.dispatchEvent(new KeyboardEvent('keydown', init));
    input.dispatchEvent(new KeyboardEvent('keypress', init));
    input.dispatchEvent(new KeyboardEvent('keyup', init));
    return 'KEYPRESS';
}
"""

PAGE_TEXT_JS = "() => document.body ? document.body.innerText : ''"


class PageAdapter:
    """
    Translates the abstract injection steps into page operations without
    assuming a stable DOM: every lookup walks the policy's ordered selector lists.
    """
    def __init__(self, host: PageHost, policy: HarnessPolicy, sleep: Optional[Callable[[float], Any]] = None):
        self.host = host
        self.policy = policy
        # The session passes its cancellation-aware sleep
        self._sleep = sleep

    async def locate_input(self) -> Optional[WidgetRef]:
        found = await self.host.run_script(LOCATE_INPUT_JS, list(self.policy.input_selectors))
        if not isinstance(found, dict) or "selector" not in found:
            logger.debug("No input widget matched any of %d selectors.", len(self.policy.input_selectors))
            return None
        widget = WidgetRef(selector=found["selector"], index=int(found.get("index", 0)), kind=found.get("kind", "value"))
        logger.debug("Input widget found: %s", widget)
        return widget

    async def set_content(self, widget: WidgetRef, text: str) -> bool:
        result = await self.host.run_script(SET_CONTENT_JS, [widget.selector, widget.index, widget.kind, text])
        logger.debug("set_content(%s) -> %r", widget.selector, result)
        return result is True

    async def try_submit(self, widget: WidgetRef) -> SubmitOutcome:
        result = await self.host.run_script(SUBMIT_JS, [list(self.policy.submit_selectors), widget.selector, widget.index])
        if result == "SENT":
            return SubmitOutcome.SENT
        if result == "KEYPRESS":
            logger.warning("No submit control found, fell back to a synthetic Enter keypress.")
            return SubmitOutcome.FALLBACK_KEYPRESS
        raise PageScriptError(f"unexpected submit result: {result!r}", context={"result": result})

    async def inject(self, text: str) -> InjectionResult:
        """One injection attempt: locate, set, wait for the page to react, submit."""
        try:
            widget = await self.locate_input()
        except PageScriptError as e:
            logger.debug("Input lookup failed: %s", e.message)
            return InjectionResult.NOT_FOUND
        if widget is None:
            return InjectionResult.NOT_FOUND

        try:
            content_set = await self.set_content(widget, text)
        except PageScriptError as e:
            logger.debug("Setting content failed: %s", e.message)
            return InjectionResult.NOT_FOUND
        if not content_set:
            logger.debug("Widget %s did not take the prompt text.", widget.selector)
            return InjectionResult.NOT_FOUND

        if self._sleep is not None and self.policy.submit_delay > 0:
            await self._sleep(self.policy.submit_delay)

        try:
            outcome = await self.try_submit(widget)
        except PageScriptError as e:
            # The prompt is in place; whether the click happened can't be told yet.
            logger.info("Submit outcome not observable (%s), treating as processing.", e.message)
            return InjectionResult.PROCESSING
        if outcome is SubmitOutcome.SENT:
            return InjectionResult.SUBMITTED
        return InjectionResult.FALLBACK_KEYPRESS

    async def read_page_text(self) -> str:
        """Visible page text; falls back to the text content of the page HTML when the script fails."""
        try:
            text = await self.host.run_script(PAGE_TEXT_JS)
            if isinstance(text, str):
                return text
            logger.debug("innerText script returned %s, falling back to HTML.", type(text).__name__)
        except PageScriptError as e:
            logger.debug("innerText script failed (%s), falling back to HTML.", e.message)
        return html_to_text(await self.host.page_html())


def html_to_text(html_content: str) -> str:
    if not html_content:
        return ""
    try:
        document = lxml_html.fromstring(html_content)
    except (ParserError, ValueError) as e:
        logger.error("Failed to parse page HTML: %s", e)
        return ""
    for node in document.xpath("//script|//style|//noscript"):
        node.drop_tree()
    return document.text_content()
