"""Logging helpers for the ingredient and recipe services.

Service loggers live under 'foodcost.services', so LOG_LEVEL and handler
setup in main.create_app apply to all of them at once. Each write operation
emits one line when it finishes, e.g.

    create_ingredient: success (ingredient_id=3 cost_per_standard_unit=0.00310000)
    delete_ingredient: in_use (ingredient_id=3)
"""

import logging
from decimal import Decimal
from typing import Any, Optional

SERVICE_LOGGER_PREFIX = "foodcost.services"


def get_service_logger(name: str) -> logging.Logger:
    """Logger for a service module, keyed by its last dotted component."""
    return logging.getLogger(f"{SERVICE_LOGGER_PREFIX}.{name.rsplit('.', 1)[-1]}")


def _render(value: Any) -> str:
    # Costs and quantities read better fixed-point than as 3.1E+1
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: Optional[int] = None,
    **context: Any,
) -> None:
    """
    Log the outcome of a service operation.

    Args:
        logger: Logger from get_service_logger
        operation: Service function name, e.g. "add_ingredient_to_recipe"
        outcome: "success", or a short reason the operation was refused
            such as "in_use"
        level: Defaults to INFO for "success" and WARNING otherwise
        **context: Row ids and derived values; also passed through `extra`,
            so keys must not collide with LogRecord attributes (`recipe_name`,
            not `name`)
    """
    if level is None:
        level = logging.INFO if outcome == "success" else logging.WARNING
    extra = {"operation": operation, "outcome": outcome, **context}
    message = f"{operation}: {outcome}"
    if context:
        details = " ".join(f"{key}={_render(value)}" for key, value in context.items())
        message = f"{message} ({details})"
    logger.log(level, message, extra=extra)
