from functools import wraps
from typing import Optional

from loguru import logger

from src.analytics.metrics import MetricsTracker


def tool_text(text: str, is_error: bool = False) -> dict:
    """Standard MCP tool response"""
    response = {"content": [{"type": "text", "text": text}]}
    if is_error:
        response["is_error"] = True
    return response


def handle_tool_errors(correlation_id: str = "N/A", metrics: Optional[MetricsTracker] = None):
    """
    A decorator factory to handle errors in tool functions.
    It logs the error with a correlation ID and returns a standardized error response.
    """
    def decorator(tool_func):
        @wraps(tool_func)
        async def wrapper(args: dict, **kwargs):
            try:
                return await tool_func(args, **kwargs)
            except Exception as e:
                error_message = f"{tool_func.__name__} failed: {e}"
                logger.error(f"[{correlation_id}] {error_message}")

                if metrics:
                    metrics.record_failure(
                        failure_type="tool_error",
                        component=tool_func.__name__,
                        reason=str(e),
                        context={"args": args}
                    )

                return tool_text(f"Error: {error_message}", is_error=True)
        return wrapper
    return decorator
