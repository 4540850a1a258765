"""Pytest configuration and shared fixtures for testing"""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from playwright.async_api import Browser, BrowserContext, Page, Error as PlaywrightError, async_playwright

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.engine.config import FillConfig


@pytest.fixture
def fast_config() -> FillConfig:
    """Config with every settle/grace delay zeroed for unit tests"""
    return FillConfig(
        navigation_attempts=1,
        post_load_settle_ms=0,
        inspect_settle_ms=0,
        settle_ms=0,
        suggestion_wait_ms=0,
        typing_delay_ms=0,
        time_typing_delay_ms=0,
        teardown_grace_seconds=0,
    )


@pytest_asyncio.fixture
async def browser() -> AsyncGenerator[Browser, None]:
    """Launch a headless browser, skipping the test when Chromium is not installed"""
    async with async_playwright() as p:
        try:
            browser = await p.chromium.launch(headless=True)
        except PlaywrightError as e:
            pytest.skip(f"Chromium not available: {e}")
        yield browser
        await browser.close()


@pytest_asyncio.fixture
async def browser_context(browser: Browser) -> AsyncGenerator[BrowserContext, None]:
    """Create a new browser context for each test"""
    context = await browser.new_context(
        viewport={"width": 1280, "height": 720},
        locale="en-US",
    )
    yield context
    await context.close()


@pytest_asyncio.fixture
async def page(browser_context: BrowserContext) -> AsyncGenerator[Page, None]:
    """Create a new page for each test"""
    page = await browser_context.new_page()
    yield page
    await page.close()


@pytest.fixture
def test_fixture_path() -> Path:
    """Return the path to the test fixtures directory"""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def simple_form_url(test_fixture_path: Path) -> str:
    """Return the file:// URL for the simple form fixture"""
    fixture_path = test_fixture_path / "simple_form.html"
    return f"file://{fixture_path}"


@pytest.fixture
def survey_form_url(test_fixture_path: Path) -> str:
    """Return the file:// URL for the question-container survey fixture"""
    fixture_path = test_fixture_path / "survey_form.html"
    return f"file://{fixture_path}"


@pytest.fixture
def repeated_sections_url(test_fixture_path: Path) -> str:
    """Return the file:// URL for the fixture with identical nested address blocks"""
    fixture_path = test_fixture_path / "repeated_sections.html"
    return f"file://{fixture_path}"
