"""
HTML fragments for the agreement: one block per service category, the cover-page
site list, the signature box and the incentives panel. Styling lives in the
template's stylesheet; these builders only emit markup with class names.
"""
from __future__ import annotations

import html
from typing import Any, Callable, Iterable, Mapping, Sequence

from engine.pricing import CATEGORIES, ServiceCategory
from models import FrequencySelection, PricingBreakdown, ServiceType, Site
from services.collector import CollectedService, collect_services, site_names
from services.normalizer import parse_price

from .format_utils import format_currency_aud

SIGNATURE_ZONE_PX = 160
CHECKLIST_OPTIONS = (
    ("quarterly", "Quarterly"),
    ("six-monthly", "6 Monthly"),
    ("yearly", "Yearly"),
)
# Odour control units are leased on a quarterly service plan only.
ODOUR_CHECKLIST_VISIBLE = ("quarterly",)


def _escape(s: Any) -> str:
    return html.escape("" if s is None else str(s), quote=True)


def _norm_option(s: Any) -> str:
    return "-".join(("" if s is None else str(s)).strip().lower().split())


def _price_text(value: Any) -> str:
    price = parse_price(value)
    return format_currency_aud(price, drop_zero_cents=True) if price else ""


def _quantity_text(value: Any) -> str:
    qty = parse_price(value)
    if not qty:
        return ""
    return str(int(qty)) if qty == int(qty) else f"{qty:g}"


def frequency_checklist_html(
    frequency: Any,
    visible: Sequence[str] | None = None,
    hide: Sequence[str] | None = None,
) -> str:
    """Tick boxes for the cadence options; the chosen option is crossed."""
    selected = _norm_option(frequency)
    if selected == "6monthly":
        selected = "six-monthly"

    options = list(CHECKLIST_OPTIONS)
    if visible:
        keep = {_norm_option(v) for v in visible}
        options = [o for o in options if o[0] in keep]
    elif hide:
        drop = {_norm_option(h) for h in hide}
        options = [o for o in options if o[0] not in drop]

    rows = "".join(
        f'<div class="checklist-row"><span class="tick-box{" checked" if key == selected else ""}"></span>{label}</div>'
        for key, label in options
    )
    return f'<div class="col-checklist">{rows}</div>'


def _chute_lines(s: CollectedService) -> list[str]:
    chutes = _quantity_text(s.chutes)
    price = _price_text(s.price)
    levels = _quantity_text(s.levels)
    return [
        f"{chutes} Chutes" if chutes else "",
        f"{price} + GST (Per Chute)" if price else "",
        f"<b>(Up to {levels} Levels)</b>" if levels else "",
        "<b>*Any Extra Levels will be invoiced <br/> accordingly</b>",
    ]


def _equipment_lines(s: CollectedService) -> list[str]:
    label = f"<b>{_escape(s.equipment_label.upper())}:</b> " if s.equipment_label else ""
    price = _price_text(s.price)
    qty = _quantity_text(s.quantity)
    return [
        f'<span class="upper">{label}{price + " + GST" if price else ""}</span>',
        f"Qty: {qty}" if qty else "",
        "<b>(Per System)</b>",
    ]


def _flat_lines(s: CollectedService) -> list[str]:
    price = _price_text(s.price)
    return [f"{price} + GST" if price else ""]


def _waste_room_lines(s: CollectedService) -> list[str]:
    return _flat_lines(s) + [
        f"<b>{_escape(s.area_label)}</b>" if s.area_label else "",
        "<b>(Per Waste Room)</b>",
    ]


def _bin_lines(s: CollectedService) -> list[str]:
    qty = _quantity_text(s.quantity)
    size = _escape(s.bin_size) if s.bin_size else ""
    price = _price_text(s.price)
    return [
        " x ".join(p for p in (f"{size} Bins" if size else "", qty) if p),
        f"{price} + GST (Per Bin)" if price else "",
    ]


def _odour_lines(s: CollectedService, units: Mapping[str, Any]) -> list[str]:
    count = _quantity_text(units.get(s.id, "")) if s.id is not None else ""
    return _flat_lines(s) + [
        "(Per Unit, No Installation cost. Min 2 year contract)",
        "<b>*240V 10AMP Outlet Must be Supplied in Waste Room</b>",
        f'<div class="units-row"><div class="units-box">{count}</div><div>UNITS</div></div>',
    ]


_LINE_BUILDERS: dict[ServiceType, Callable[[CollectedService], list[str]]] = {
    ServiceType.CHUTE_CLEANING: _chute_lines,
    ServiceType.EQUIPMENT_MAINTENANCE: _equipment_lines,
    ServiceType.HOPPER_DOOR_INSPECTION: _flat_lines,
    ServiceType.WASTE_ROOM_PRESSURE_CLEAN: _waste_room_lines,
    ServiceType.BIN_CLEANING: _bin_lines,
}


def _service_item_html(s: CollectedService, lines: Iterable[str]) -> str:
    heading = _escape(s.site_name) + (f" - {_escape(s.building_name)}" if s.building_name else "")
    body = "".join(f"<div>{line}</div>" for line in lines)
    return f'<div class="service-item avoid-break"><div><b>{heading}</b></div>{body}</div>'


def category_section_html(
    category: ServiceCategory,
    sites: Sequence[Site] | None,
    frequency: Any,
    odour_units: Mapping[str, Any] | None = None,
) -> str:
    """
    One category block. Empty when the category was not chosen (null or blank
    frequency) or no service of that type exists on any site.
    """
    if frequency is None or not str(frequency).strip():
        return ""
    services = collect_services(sites, category.service_type)
    if not services:
        return ""

    units = odour_units or {}
    if category.service_type == ServiceType.ODOUR_CONTROL:
        items = "".join(_service_item_html(s, _odour_lines(s, units)) for s in services)
        checklist = frequency_checklist_html(frequency, visible=ODOUR_CHECKLIST_VISIBLE)
    else:
        build_lines = _LINE_BUILDERS[category.service_type]
        items = "".join(_service_item_html(s, build_lines(s)) for s in services)
        checklist = frequency_checklist_html(frequency)

    return (
        f'<div class="service-section" data-category="{category.service_type.value}">'
        f'<div class="col-label"><b>{_escape(category.label)}</b></div>'
        '<div class="col-recommended">Quarterly</div>'
        f'<div class="col-items">{items}</div>'
        f"{checklist}"
        "</div>"
    )


def services_html(
    sites: Sequence[Site] | None,
    frequencies: FrequencySelection,
    odour_units: Mapping[str, Any] | None = None,
) -> str:
    return "".join(
        category_section_html(c, sites, frequencies.for_type(c.service_type), odour_units) for c in CATEGORIES
    )


def cover_page_site_names_html(sites: Sequence[Site] | None) -> str:
    names = "".join(f'<div class="cover-site">{_escape(n)}</div>' for n in site_names(sites) if n)
    return f'<div class="cover-sites">{names}</div>'


def signature_html(data_url: str | None) -> str:
    """Signature image scaled into a fixed-height box, or the empty box."""
    if not data_url:
        return f'<div class="signature-zone" style="height:{SIGNATURE_ZONE_PX}px;"></div>'
    return (
        f'<div class="signature-zone" style="height:{SIGNATURE_ZONE_PX}px;">'
        f'<img src="{_escape(data_url)}" alt="Signature" class="signature-img" />'
        "</div>"
    )


def incentives_html(breakdown: PricingBreakdown) -> str:
    if not breakdown.incentives_enabled or not breakdown.incentive_tier:
        return ""
    perks = "".join(f"<li>{_escape(p)}</li>" for p in breakdown.incentive_perks)
    discount = ""
    if breakdown.discount_amount:
        discount = (
            f'<p class="incentive-discount">{breakdown.discount_pct:g}% bundle discount: '
            f"-{format_currency_aud(breakdown.discount_amount)} per year</p>"
        )
    return (
        '<section class="incentives avoid-break">'
        f"<h3>{_escape(breakdown.incentive_tier)} Service Package</h3>"
        f"<ul>{perks}</ul>{discount}"
        "</section>"
    )
