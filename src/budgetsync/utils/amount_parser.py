"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

from budgetsync.domain.errors import ValidationError

_CURRENCY_RE = re.compile(r"[$€£¥]|\b[A-Za-z]{3}\b|Kč", re.IGNORECASE)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string from a bank export into a Decimal.

    Handles various formats:
    - "123.45", "-123.45"
    - "1,234.56" (comma thousands separator)
    - "1 234,56" / "-1.234,56" (decimal comma, as in Czech and German exports)
    - "(123.45)" (negative in parentheses)
    - currency symbols or codes: "$12.00", "-250,00 CZK", "12 Kč"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValidationError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValidationError("Empty amount string")

    text = str(amount_str).strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = _CURRENCY_RE.sub("", text)
    # Regular and non-breaking spaces are thousands separators
    text = re.sub(r"[\s ]", "", text)

    if "," in text and "." in text:
        # Whichever separator comes last is the decimal separator
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        head, _, tail = text.rpartition(",")
        if len(tail) == 3 and head.lstrip("+-").isdigit():
            # "1,234" is a thousands separator
            text = head + tail
        else:
            text = text.replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Could not parse amount '{amount_str}'") from None
    if not amount.is_finite():
        raise ValidationError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
