import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.append(os.getcwd())

from src.agent.form_session import FormSession
from src.engine.config import FillConfig


def load_config(headless: bool) -> FillConfig:
    """--headless forces headless mode; without it FORMFILL_HEADLESS / YAML decide"""
    overrides = {}
    if headless:
        overrides['headless'] = True
    return FillConfig.load(**overrides)


async def inspect(url: str, headless: bool):
    config = load_config(headless)
    session = FormSession(config=config)
    try:
        print(f"Navigating to {url}...")
        final_url = await session.navigate(url)
        fields = await session.detect_fields()

        print(f"Landed on: {final_url}")
        print(f"Detected {len(fields)} fields:\n")
        print(session.summary() or "(no fields)")

        required = [f for f in fields if f.required]
        if required:
            print(f"\nRequired: {', '.join(f.label for f in required)}")
    finally:
        await session.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print the detected field list for a form URL")
    parser.add_argument("url", help="Form URL")
    parser.add_argument("--headless", action="store_true", help="Run without a browser window")
    args = parser.parse_args()
    asyncio.run(inspect(args.url, args.headless))
