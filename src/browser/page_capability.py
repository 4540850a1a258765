"""Page capability interface consumed by the engine.

The engine only ever talks to a page through this interface, using plain
selector strings. PlaywrightPage is the production implementation; tests
supply an in-memory fake.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from src.browser.dom_snapshot import DomSnapshot


def id_selector(element_id: str) -> str:
    """Attribute form of an id selector (safe for ids that are not valid CSS identifiers)"""
    return f'[id="{element_id}"]'


class PageCapability(ABC):
    """DOM query, input and wait primitives for one page"""

    @property
    @abstractmethod
    def url(self) -> str:
        """Current page URL"""

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int) -> None:
        """Navigate and wait for DOM content. Raises NavigationTimeout on timeout."""

    @abstractmethod
    async def snapshot(self) -> DomSnapshot:
        """Structured snapshot of question containers and candidate controls"""

    @abstractmethod
    async def exists(self, selector: str) -> bool:
        pass

    @abstractmethod
    async def is_visible(self, selector: str) -> bool:
        pass

    @abstractmethod
    async def click(
        self,
        selector: str,
        force: bool = False,
        position: Optional[Dict[str, int]] = None,
        timeout_ms: int = 5000
    ) -> None:
        pass

    @abstractmethod
    async def js_click(self, selector: str) -> bool:
        """Dispatch element.click() in page. Returns False if nothing matched."""

    @abstractmethod
    async def fill(self, selector: str, value: str) -> None:
        pass

    @abstractmethod
    async def clear(self, selector: str) -> None:
        """Empty an input or content-editable element in place"""

    @abstractmethod
    async def type(self, selector: str, text: str, delay_ms: int = 0) -> None:
        """Type key by key with an optional inter-keystroke delay"""

    @abstractmethod
    async def press(self, selector: str, key: str) -> None:
        pass

    @abstractmethod
    async def keyboard_press(self, key: str) -> None:
        pass

    @abstractmethod
    async def keyboard_type(self, text: str) -> None:
        pass

    @abstractmethod
    async def blur(self, selector: str) -> None:
        pass

    @abstractmethod
    async def blur_active(self) -> None:
        """Blur whatever element currently holds focus"""

    @abstractmethod
    async def scroll_into_view(self, selector: str) -> None:
        pass

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_ms: int, state: str = "visible") -> bool:
        """Wait for a selector. Returns False on timeout instead of raising."""

    @abstractmethod
    async def wait(self, ms: int) -> None:
        pass

    @abstractmethod
    async def input_value(self, selector: str) -> str:
        pass

    @abstractmethod
    async def is_checked(self, selector: str) -> bool:
        """checked state of an input, or aria-checked of a custom control"""

    @abstractmethod
    async def get_attribute(self, selector: str, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def tag_name(self, selector: str) -> Optional[str]:
        """Lower-case tag name of the first match, None when nothing matches"""

    @abstractmethod
    async def inner_text(self, selector: str) -> str:
        pass

    @abstractmethod
    async def inner_texts(self, selector: str) -> List[str]:
        """Visible text of every match, in document order"""

    @abstractmethod
    async def click_nth(self, selector: str, index: int) -> None:
        pass

    @abstractmethod
    async def select_option(
        self,
        selector: str,
        index: Optional[int] = None,
        label: Optional[str] = None,
        value: Optional[str] = None
    ) -> None:
        pass

    @abstractmethod
    async def set_input_files(self, selector: str, path: str) -> None:
        pass

    @abstractmethod
    async def find_clickable_by_text(self, selectors: List[str], keyword: str) -> Optional[str]:
        """
        Scan the DOM for the first element whose text equals or contains keyword

        Args:
            selectors: Candidate element selectors, scanned in order
            keyword: Case-insensitive text to look for

        Returns:
            A selector addressing the found element, or None
        """

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        pass
