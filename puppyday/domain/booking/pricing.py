"""Service and add-on pricing"""

from typing import Optional

from ...models import Addon, Service
from ...shared.formatting import format_currency, round_money


def _money(amount) -> float:
    return float(round_money(amount))


def get_service_price_for_size(service: Optional[Service], size: Optional[str]) -> float:
    """Price of a service for a pet size, 0 when the service has no price for that size"""
    if not service or not size:
        return 0
    for price in service.prices or []:
        if price.size == size:
            return price.price
    return 0


def get_service_price_range(service: Optional[Service]) -> dict:
    prices = [p.price for p in (service.prices if service else None) or []]
    if not prices:
        return {"min": 0, "max": 0, "formatted": "$0"}

    low, high = min(prices), max(prices)
    formatted = format_currency(low) if low == high else f"{format_currency(low)} - {format_currency(high)}"
    return {"min": low, "max": high, "formatted": formatted}


def calculate_addons_total(addons: Optional[list[Addon]]) -> float:
    return _money(sum(addon.price for addon in addons or []))


def calculate_total(service_price: float, addons: Optional[list[Addon]]) -> float:
    return _money((service_price or 0) + calculate_addons_total(addons))


def calculate_price(
    service: Optional[Service],
    size: Optional[str],
    addons: Optional[list[Addon]] = None,
    tax_rate: float = 0,
    deposit_enabled: bool = False,
    deposit_percentage: float = 0,
) -> dict:
    """
    Full price breakdown for a booking.

    tax_rate and deposit_percentage are fractions (0.1 == 10%). The deposit is
    a share of the taxed total and is None when deposits are off.
    """
    service_price = get_service_price_for_size(service, size)
    addons = addons or []
    addons_total = calculate_addons_total(addons)
    subtotal = _money(service_price + addons_total)
    tax = _money(subtotal * tax_rate) if tax_rate else 0
    total = _money(subtotal + tax)

    return {
        "service_name": service.name if service else "",
        "service_price": service_price,
        "addons": [{"name": addon.name, "price": addon.price} for addon in addons],
        "addons_total": addons_total,
        "subtotal": subtotal,
        "tax": tax,
        "total": total,
        "deposit": _money(total * deposit_percentage) if deposit_enabled else None,
    }
