"""Display formatting for phone numbers, money, durations and pet sizes"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

PET_SIZES = ("small", "medium", "large", "xlarge")

# Inclusive weight bounds in pounds; xlarge has no upper bound
SIZE_WEIGHT_RANGES: dict[str, dict[str, Optional[int]]] = {
    "small": {"min": 0, "max": 18},
    "medium": {"min": 19, "max": 35},
    "large": {"min": 36, "max": 65},
    "xlarge": {"min": 66, "max": None},
}

SIZE_LABELS = {
    "small": "Small (0-18 lbs)",
    "medium": "Medium (19-35 lbs)",
    "large": "Large (36-65 lbs)",
    "xlarge": "X-Large (66+ lbs)",
}

SIZE_SHORT_LABELS = {
    "small": "Small",
    "medium": "Medium",
    "large": "Large",
    "xlarge": "X-Large",
}


def format_phone_number(phone: Optional[str]) -> str:
    """
    Format a phone number for display.

    10 digits -> (657) 252-2903
    11 digits with a leading 1 -> +1 (657) 252-2903
    Anything else is returned unchanged.
    """
    if not phone:
        return phone or ""

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"

    return phone


def round_money(amount: Union[int, float, Decimal]) -> Decimal:
    """Round half-up to cents, going through str() so 10.555 rounds to 10.56"""
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_currency(amount: Union[int, float, Decimal, None]) -> str:
    value = round_money(amount or 0)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_duration(minutes: int) -> str:
    """45 -> '45 min', 60 -> '1 hour', 120 -> '2 hours', 90 -> '1h 30m'"""
    if minutes < 60:
        return f"{minutes} min"

    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{hours}h {remainder}m"


def format_time_display(time_str: str) -> str:
    """'09:00' -> '9:00 AM', '13:30' -> '1:30 PM'"""
    hours, minutes = (int(part) for part in time_str.split(":")[:2])
    period = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{minutes:02d} {period}"


def get_size_label(size: str) -> str:
    return SIZE_LABELS.get(size, size)


def get_size_short_label(size: str) -> str:
    return SIZE_SHORT_LABELS.get(size, size)


def get_size_from_weight(weight: float) -> str:
    """Fractional weights between bands round into the next band up (18.5 -> medium)"""
    if weight <= 18:
        return "small"
    if weight < 36:
        return "medium"
    if weight <= 65:
        return "large"
    return "xlarge"
