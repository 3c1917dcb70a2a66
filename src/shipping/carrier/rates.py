"""Shared rate-estimation helpers.

Quotes are advisory: providers publish rate cards per contract, so adapters
only approximate them with a base charge plus a per-kilogram slab.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from shipping.carrier.contract import CourierRate

MINIMUM_CHARGEABLE_WEIGHT = Decimal("0.5")
_PAISE = Decimal("0.01")


@dataclass(frozen=True)
class ServiceTariff:
    """Estimation parameters for one provider service."""

    service_code: str
    service_name: str
    base_charge: Decimal
    per_kg: Decimal
    transit_days: int
    is_express: bool


def chargeable_weight(weight_kg: Decimal) -> Decimal:
    """Round up to the next half kilogram, with a half-kilogram floor."""
    rounded = Decimal(math.ceil(Decimal(weight_kg) * 2)) / 2
    return max(MINIMUM_CHARGEABLE_WEIGHT, rounded)


def freight_charge(base_charge: Decimal, per_kg: Decimal, weight_kg: Decimal) -> Decimal:
    return _money(base_charge + per_kg * chargeable_weight(weight_kg))


def cod_charge(cod_amount: Decimal | None, minimum: Decimal, percent: Decimal) -> Decimal:
    """COD handling fee: a percentage of the collectable amount, never below ``minimum``."""
    amount = cod_amount or Decimal("0")
    return _money(max(minimum, amount * percent / 100))


def expected_delivery(transit_days: int, today: date | None = None) -> date:
    return (today or date.today()) + timedelta(days=transit_days)


def quote(
    tariff: ServiceTariff,
    weight_kg: Decimal,
    cod_fee: Decimal = Decimal("0"),
    today: date | None = None,
) -> CourierRate:
    freight = freight_charge(tariff.base_charge, tariff.per_kg, weight_kg)
    return CourierRate(
        service_code=tariff.service_code,
        service_name=tariff.service_name,
        freight_charge=freight,
        cod_charge=cod_fee,
        total_charge=freight + cod_fee,
        estimated_days=tariff.transit_days,
        expected_delivery=expected_delivery(tariff.transit_days, today),
        is_express=tariff.is_express,
        is_surface=not tariff.is_express,
    )


def sort_by_total(rates: list[CourierRate]) -> list[CourierRate]:
    return sorted(rates, key=lambda rate: rate.total_charge)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_PAISE, rounding=ROUND_HALF_UP)
