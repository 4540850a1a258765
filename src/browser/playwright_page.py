"""Playwright implementation of the page capability"""

from typing import Any, Dict, List, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.browser.dom_snapshot import DomSnapshot, SNAPSHOT_SCRIPT
from src.browser.page_capability import PageCapability
from src.engine.config import LAYOUT_WRAPPER_SELECTOR, QUESTION_CONTAINER_SELECTOR
from src.engine.errors import NavigationTimeout


MARK_ATTRIBUTE = "data-formfill-target"

FIND_BY_TEXT_SCRIPT = """
({ selectors, keyword, attr }) => {
    const needle = keyword.toLowerCase();
    for (const sel of selectors) {
        const found = Array.from(document.querySelectorAll(sel)).find(b => {
            const text = (b.textContent || b.innerText || b.value || '').trim().toLowerCase();
            return text === needle || text.includes(needle);
        });
        if (found) {
            found.setAttribute(attr, needle);
            return true;
        }
    }
    return false;
}
"""


class PlaywrightPage(PageCapability):
    """Adapts a Playwright Page to the engine's capability interface"""

    def __init__(self, page: Page):
        self._page = page

    @property
    def raw(self) -> Page:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(url, timeout_ms) from e

    async def snapshot(self) -> DomSnapshot:
        raw = await self._page.evaluate(SNAPSHOT_SCRIPT, {
            "containerSelector": QUESTION_CONTAINER_SELECTOR,
            "layoutWrapperSelector": LAYOUT_WRAPPER_SELECTOR,
        })
        return DomSnapshot.model_validate(raw)

    async def exists(self, selector: str) -> bool:
        try:
            return await self._page.query_selector(selector) is not None
        except PlaywrightError as e:
            logger.debug(f"Selector query failed for {selector}: {e}")
            return False

    async def is_visible(self, selector: str) -> bool:
        try:
            return await self._page.is_visible(selector)
        except PlaywrightError:
            return False

    async def click(
        self,
        selector: str,
        force: bool = False,
        position: Optional[Dict[str, int]] = None,
        timeout_ms: int = 5000
    ) -> None:
        await self._page.click(selector, force=force, position=position, timeout=timeout_ms)

    async def js_click(self, selector: str) -> bool:
        element = await self._page.query_selector(selector)
        if not element:
            return False
        await element.evaluate("el => el.click()")
        return True

    async def fill(self, selector: str, value: str) -> None:
        await self._page.fill(selector, value)

    async def clear(self, selector: str) -> None:
        element = await self._page.query_selector(selector)
        if not element:
            return
        await element.evaluate("""el => {
            if (el.tagName === 'INPUT' || el.tagName === 'TEXTAREA') el.value = '';
            else el.textContent = '';
            el.dispatchEvent(new Event('input', { bubbles: true }));
        }""")

    async def type(self, selector: str, text: str, delay_ms: int = 0) -> None:
        await self._page.locator(selector).first.press_sequentially(text, delay=delay_ms)

    async def press(self, selector: str, key: str) -> None:
        await self._page.press(selector, key)

    async def keyboard_press(self, key: str) -> None:
        await self._page.keyboard.press(key)

    async def keyboard_type(self, text: str) -> None:
        await self._page.keyboard.type(text)

    async def blur(self, selector: str) -> None:
        element = await self._page.query_selector(selector)
        if element:
            await element.evaluate("el => el.blur()")

    async def blur_active(self) -> None:
        await self._page.evaluate("""() => {
            if (document.activeElement && document.activeElement !== document.body) {
                document.activeElement.blur();
            }
        }""")

    async def scroll_into_view(self, selector: str) -> None:
        element = await self._page.query_selector(selector)
        if element:
            await element.scroll_into_view_if_needed()

    async def wait_for_selector(self, selector: str, timeout_ms: int, state: str = "visible") -> bool:
        try:
            await self._page.wait_for_selector(selector, state=state, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait(self, ms: int) -> None:
        await self._page.wait_for_timeout(ms)

    async def input_value(self, selector: str) -> str:
        element = await self._page.query_selector(selector)
        if not element:
            return ""
        return await element.evaluate("""el => {
            if ('value' in el && (el.tagName === 'INPUT' || el.tagName === 'TEXTAREA' || el.tagName === 'SELECT')) return el.value;
            return (el.innerText || el.textContent || '').trim();
        }""")

    async def is_checked(self, selector: str) -> bool:
        element = await self._page.query_selector(selector)
        if not element:
            return False
        return await element.evaluate("""el => {
            if (el.tagName === 'LABEL' && el.htmlFor) {
                const input = document.getElementById(el.htmlFor);
                return !!(input && input.checked);
            }
            if (el.tagName === 'INPUT') return el.checked;
            if (el.getAttribute('aria-checked') === 'true') return true;
            const inner = el.querySelector('[aria-checked]');
            return !!(inner && inner.getAttribute('aria-checked') === 'true');
        }""")

    async def get_attribute(self, selector: str, name: str) -> Optional[str]:
        element = await self._page.query_selector(selector)
        if not element:
            return None
        return await element.get_attribute(name)

    async def tag_name(self, selector: str) -> Optional[str]:
        element = await self._page.query_selector(selector)
        if not element:
            return None
        return await element.evaluate("el => el.tagName.toLowerCase()")

    async def inner_text(self, selector: str) -> str:
        element = await self._page.query_selector(selector)
        if not element:
            return ""
        return (await element.inner_text()).strip()

    async def inner_texts(self, selector: str) -> List[str]:
        texts = await self._page.locator(selector).all_inner_texts()
        return [t.strip() for t in texts]

    async def click_nth(self, selector: str, index: int) -> None:
        await self._page.locator(selector).nth(index).click()

    async def select_option(
        self,
        selector: str,
        index: Optional[int] = None,
        label: Optional[str] = None,
        value: Optional[str] = None
    ) -> None:
        if index is not None:
            await self._page.select_option(selector, index=index)
        elif label is not None:
            await self._page.select_option(selector, label=label)
        else:
            await self._page.select_option(selector, value=value)

    async def set_input_files(self, selector: str, path: str) -> None:
        await self._page.set_input_files(selector, path)

    async def find_clickable_by_text(self, selectors: List[str], keyword: str) -> Optional[str]:
        needle = keyword.lower()
        found = await self._page.evaluate(FIND_BY_TEXT_SCRIPT, {
            "selectors": selectors,
            "keyword": needle,
            "attr": MARK_ATTRIBUTE,
        })
        return f'[{MARK_ATTRIBUTE}="{needle}"]' if found else None

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._page.evaluate(script, arg)
