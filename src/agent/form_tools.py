"""MCP tools exposing the single-step form operations to an agent loop"""

import json
from typing import Any, Dict

from claude_agent_sdk import create_sdk_mcp_server, tool
from loguru import logger

from src.agent.form_session import FormSession
from src.agent.utils import handle_tool_errors, tool_text
from src.engine.models import InteractionOutcome


TOOL_NAMES = [
    "navigate_to_form",
    "detect_form_fields",
    "fill_field",
    "select_option",
    "submit_form",
]


def describe_outcome(outcome: InteractionOutcome) -> Dict[str, Any]:
    label = outcome.field.label
    if outcome.failed:
        return tool_text(f"Error: {outcome.error}", is_error=True)
    if outcome.verified:
        return tool_text(f'Filled "{label}" with "{outcome.attempted_value}" (verified)')
    return tool_text(f'Filled "{label}" with "{outcome.attempted_value}" (could not verify)')


def build_form_tools(session: FormSession) -> list:
    """Tool objects bound to one FormSession"""
    guard = handle_tool_errors(session.correlation_id, session.metrics)

    @tool(
        "navigate_to_form",
        "Open a form URL in the browser",
        {"url": str},
    )
    @guard
    async def navigate_to_form(args: Dict[str, Any]) -> Dict[str, Any]:
        final_url = await session.navigate(args["url"])
        return tool_text(f"Navigated to {final_url}")

    @tool(
        "detect_form_fields",
        "Scan the current page and list every form field with its type, label and options",
        {},
    )
    @guard
    async def detect_form_fields(args: Dict[str, Any]) -> Dict[str, Any]:
        fields = await session.detect_fields()
        if not fields:
            return tool_text("No form fields detected on this page.")
        logger.info(f"[{session.correlation_id}] Tool detected {len(fields)} fields")
        return tool_text(f"Detected {len(fields)} fields:\n{session.summary()}")

    @tool(
        "fill_field",
        "Fill a text, email, phone, date, time or file field identified by its label",
        {"label": str, "value": str},
    )
    @guard
    async def fill_field(args: Dict[str, Any]) -> Dict[str, Any]:
        outcome = await session.fill_field(args["label"], args["value"])
        return describe_outcome(outcome)

    @tool(
        "select_option",
        "Select an option of a radio group, checkbox group or dropdown identified by its label",
        {"label": str, "option": str},
    )
    @guard
    async def select_option(args: Dict[str, Any]) -> Dict[str, Any]:
        outcome = await session.select_option(args["label"], args["option"])
        return describe_outcome(outcome)

    @tool(
        "submit_form",
        "Find and click the submit button, then confirm the submission went through",
        {},
    )
    @guard
    async def submit_form(args: Dict[str, Any]) -> Dict[str, Any]:
        signal = await session.submit()
        return tool_text(json.dumps({"submitted": True, "signal": signal, "filled_fields": session.filled_fields}))

    return [navigate_to_form, detect_form_fields, fill_field, select_option, submit_form]


def build_form_tools_server(session: FormSession):
    """In-process MCP server for the form tools"""
    return create_sdk_mcp_server(
        name="formfill",
        version="1.0.0",
        tools=build_form_tools(session),
    )
