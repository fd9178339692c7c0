from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer


def _plain_decimal(value: Decimal) -> str:
    # str() switches to exponent notation for values like Decimal("0E-8")
    return format(value, "f")


# Decimal rendered as a fixed-point string in JSON responses
DecimalStr = Annotated[Decimal, PlainSerializer(_plain_decimal, return_type=str, when_used="json")]
