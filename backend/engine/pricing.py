"""
Annual pricing for a service agreement.

Each category is billed as price x visits per year, optionally weighted per unit
(chutes, equipment/bin quantity, odour-control units). The category totals are
summed, a volume discount is taken off when incentives are enabled, and the
result is floored at zero. The contract total shown to the customer is a fixed
two-year multiple of that annual figure.
"""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from models import CategoryTotal, FrequencySelection, PricingBreakdown, Service, ServiceType, Site
from services.collector import collect_services
from services.normalizer import parse_price

CONTRACT_TOTAL_MULTIPLIER = 2
# Totals that overflow float saturate here instead of becoming inf.
MAX_TOTAL = sys.float_info.max

DiscountRule = Callable[[int], Any]


@dataclass(frozen=True)
class ServiceCategory:
    service_type: ServiceType
    frequency_key: str
    label: str
    weight_field: Optional[str] = None
    per_unit: bool = False


CATEGORIES: tuple[ServiceCategory, ...] = (
    ServiceCategory(ServiceType.CHUTE_CLEANING, "chuteCleaningFrequency", "Waste Chute Cleaning", weight_field="chutes"),
    ServiceCategory(
        ServiceType.EQUIPMENT_MAINTENANCE,
        "equipmentMaintenanceFrequency",
        "Equipment Preventative Maintenance",
        weight_field="quantity",
    ),
    ServiceCategory(
        ServiceType.HOPPER_DOOR_INSPECTION,
        "selfClosingHopperDoorInspectionFrequency",
        "Self-Closing Hopper Door Inspection",
    ),
    ServiceCategory(ServiceType.WASTE_ROOM_PRESSURE_CLEAN, "wasteRoomCleaningFrequency", "Waste Room High Pressure Clean"),
    ServiceCategory(ServiceType.BIN_CLEANING, "binCleaningFrequency", "Wheelie Bin Cleaning", weight_field="quantity"),
    ServiceCategory(
        ServiceType.ODOUR_CONTROL,
        "odourControlFrequency",
        "EF Neutraliser (Odour Management System)",
        per_unit=True,
    ),
)


@dataclass(frozen=True)
class IncentiveTier:
    tier: str = ""
    perks: List[str] = field(default_factory=list)


BASIC_PERKS = [
    "Priority scheduling for all booked services",
    "Annual site hygiene report",
    "Dedicated account manager",
]
ESSENTIAL_PERKS = BASIC_PERKS + [
    "5% discount on the annual service total",
    "Free call-out for minor chute blockages",
    "Complimentary deodoriser treatment each visit",
]
PREMIUM_PERKS = [
    "Priority scheduling for all booked services",
    "Annual site hygiene report",
    "Dedicated account manager",
    "10% discount on the annual service total",
    "Free call-out for minor chute blockages",
    "Complimentary deodoriser treatment each visit",
    "Free replacement of odour control consumables",
]


def frequency_multiplier(label: Any) -> int:
    """
    Visits per year for a frequency label.
    Blank or "none" -> 0, "yearly" -> 1, six-monthly -> 2. Any other non-empty
    label, including unknown ones, is billed as quarterly (4).
    """
    f = ("" if label is None else str(label)).strip().lower()
    if not f or f == "none":
        return 0
    if f == "yearly":
        return 1
    if f in ("six-monthly", "6monthly", "six monthly"):
        return 2
    return 4


def _capped(amount: float) -> float:
    return amount if math.isfinite(amount) else MAX_TOTAL


def is_selected(label: Any) -> bool:
    """A category counts as selected unless its frequency is null, blank or "none"."""
    if label is None:
        return False
    f = str(label).strip()
    return bool(f) and f.lower() != "none"


def _weight(service: Service, weight_field: str) -> float:
    raw = getattr(service, weight_field, None)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return 1.0
    return parse_price(raw)


def annual_cost(services: Sequence[Service] | None, frequency: Any, weight_field: str | None = None) -> float:
    """Sum of price x multiplier (x per-item weight when the category bills per unit)."""
    mult = frequency_multiplier(frequency)
    if not mult or not services:
        return 0.0
    total = 0.0
    for s in services:
        amount = parse_price(s.price) * mult
        if weight_field:
            amount *= _weight(s, weight_field)
        total += amount
    return _capped(total)


def odour_control_annual(
    services: Sequence[Service] | None,
    frequency: Any,
    units_by_id: Mapping[str, Any] | None,
) -> float:
    """Units x unit price x multiplier per odour-control service; units default to 0."""
    mult = frequency_multiplier(frequency)
    if not mult or not services:
        return 0.0
    units_by_id = units_by_id or {}
    total = 0.0
    for s in services:
        units = parse_price(units_by_id.get(s.id, 0)) if s.id is not None else 0.0
        total += units * parse_price(s.price) * mult
    return _capped(total)


def default_discount_rule(selected_count: int) -> int:
    """
    Volume discount percentage by number of selected categories.
    <3 -> 0, 4-5 -> 5, >=6 -> 10. Exactly 3 also yields 0, unlike the
    incentive tiers where 3 already earns BASIC.
    """
    c = selected_count if isinstance(selected_count, int) else 0
    if c < 3:
        return 0
    if 4 <= c < 6:
        return 5
    if c >= 6:
        return 10
    return 0


def _coerce_pct(value: Any) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(pct):
        return 0.0
    return min(max(pct, 0.0), 100.0)


def selected_category_count(frequencies: FrequencySelection | None) -> int:
    if frequencies is None:
        return 0
    return sum(1 for c in CATEGORIES if is_selected(frequencies.for_type(c.service_type)))


def incentive_tier(selected_count: int) -> IncentiveTier:
    """Perk bundle unlocked by the number of selected categories."""
    if selected_count >= 6:
        return IncentiveTier("PREMIUM", list(PREMIUM_PERKS))
    if selected_count >= 4:
        return IncentiveTier("ESSENTIAL", list(ESSENTIAL_PERKS))
    if selected_count == 3:
        return IncentiveTier("BASIC", list(BASIC_PERKS))
    return IncentiveTier()


def category_annual_cost(
    category: ServiceCategory,
    services: Sequence[Service],
    frequency: Any,
    odour_units: Mapping[str, Any] | None = None,
) -> float:
    if category.per_unit:
        return odour_control_annual(services, frequency, odour_units)
    return annual_cost(services, frequency, category.weight_field)


def contract_total(grand_total: float) -> float:
    return _capped(grand_total * CONTRACT_TOTAL_MULTIPLIER)


def compute_pricing(
    sites: Iterable[Site] | None,
    frequencies: FrequencySelection | None,
    odour_units: Mapping[str, Any] | None = None,
    incentives_enabled: bool = False,
    discount_rule: DiscountRule = default_discount_rule,
) -> PricingBreakdown:
    """Full pricing breakdown; pure function of its inputs."""
    frequencies = frequencies or FrequencySelection()
    sites = list(sites or [])

    categories: List[CategoryTotal] = []
    for category in CATEGORIES:
        frequency = frequencies.for_type(category.service_type)
        services = collect_services(sites, category.service_type)
        categories.append(
            CategoryTotal(
                service_type=category.service_type,
                label=category.label,
                frequency=frequency,
                multiplier=frequency_multiplier(frequency),
                service_count=len(services),
                annual_cost=category_annual_cost(category, services, frequency, odour_units),
            )
        )

    subtotal = _capped(sum(c.annual_cost for c in categories))
    selected_count = selected_category_count(frequencies)
    discount_pct = _coerce_pct(discount_rule(selected_count))
    discount_amount = subtotal * (discount_pct / 100) if incentives_enabled and discount_pct else 0.0
    grand_total = max(0.0, subtotal - discount_amount)
    tier = incentive_tier(selected_count)

    return PricingBreakdown(
        categories=categories,
        subtotal=subtotal,
        selected_count=selected_count,
        discount_pct=discount_pct,
        discount_amount=discount_amount,
        incentives_enabled=bool(incentives_enabled),
        grand_total=grand_total,
        contract_total=contract_total(grand_total),
        incentive_tier=tier.tier,
        incentive_perks=tier.perks,
    )


def compute_grand_total(
    sites: Iterable[Site] | None,
    frequencies: FrequencySelection | None,
    odour_units: Mapping[str, Any] | None = None,
    incentives_enabled: bool = False,
    discount_rule: DiscountRule = default_discount_rule,
) -> float:
    """Discounted annual total across all selected categories, never negative."""
    return compute_pricing(sites, frequencies, odour_units, incentives_enabled, discount_rule).grand_total
