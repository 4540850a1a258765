#!/usr/bin/env python3
"""Main entry point for the form auto-fill engine"""

import asyncio
import os
import sys
import argparse
import json
from loguru import logger
from dotenv import load_dotenv

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


def configure_logging(debug: bool = False):
    """Colored stderr sink plus a serialized JSON file sink"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format=LOG_FORMAT)
    logger.add("logs/formfill_json_{time}.log", rotation="1 day", retention="7 days", level="DEBUG", serialize=True)


# Configure logger
configure_logging()

# Load environment variables
load_dotenv()

from src.agent.form_session import FormSession
from src.analytics.metrics import MetricsTracker
from src.engine.config import FillConfig, RequiredFieldPolicy


def load_data_map(raw: str) -> dict:
    """
    Read the field data from a JSON file path or an inline JSON object

    Raises:
        ValueError: not a JSON object
    """
    if os.path.exists(raw):
        with open(raw, "r") as f:
            data = json.load(f)
    else:
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Field data must be a JSON object of field name -> value")
    return data


async def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Form auto-fill engine')
    parser.add_argument('--url', type=str, required=True, help='Form URL to fill')
    parser.add_argument('--data', type=str, required=True, help='JSON file path or inline JSON object of field name -> value')
    parser.add_argument('--config', type=str, help='YAML config file (default: config/config.yaml)')
    parser.add_argument('--headless', action='store_true', help='Run browser in headless mode (no UI)')
    parser.add_argument('--strict', action='store_true', help='Fail the job when a required field cannot be verified')
    parser.add_argument('--debug', action='store_true', help='Enable verbose logging')
    args = parser.parse_args()

    if args.debug:
        configure_logging(debug=True)
        logger.debug("DEBUG mode enabled (verbose logging active)")

    try:
        data_map = load_data_map(args.data)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read field data: {e}")
        return 1

    overrides = {}
    if args.headless:
        overrides['headless'] = True
        logger.info("Running in HEADLESS mode (no browser UI)")
    if args.strict:
        overrides['required_field_policy'] = RequiredFieldPolicy.STRICT

    try:
        config = FillConfig.load(args.config, **overrides)
        metrics = MetricsTracker()
        session = FormSession(config=config, metrics=metrics)

        logger.info(f"Filling {args.url} with {len(data_map)} values (policy: {config.required_field_policy.value})")
        result = await session.run_fill(args.url, data_map)

        summary = result.validation_summary
        logger.info(f"Required fields filled: {summary.filled_required}/{summary.total_required}")
        if summary.missing_required:
            logger.warning(f"Missing required: {', '.join(summary.missing_required)}")

        if result.succeeded:
            logger.success(f"Form submitted ({result.submission_signal})")
            return 0

        logger.error(f"Fill failed: {result.error}")
        if session.page is not None and not config.headless:
            logger.info("Browser left open for inspection. Press Ctrl+C to exit.")
            await asyncio.Event().wait()
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)
