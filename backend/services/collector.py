"""Flatten site -> building -> service trees into per-category lists."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from pydantic import ConfigDict, field_validator

from models import Service, ServiceType, Site


class CollectedService(Service):
    """A service carrying the labels of the site and building it belongs to."""
    model_config = ConfigDict(extra="allow")

    site_name: str = ""
    site_id: Optional[str] = None
    building_id: Optional[str] = None
    building_name: Optional[str] = None

    @field_validator("site_name", mode="before")
    @classmethod
    def coerce_site_name(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("site_id", "building_id", "building_name", mode="before")
    @classmethod
    def coerce_labels(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) or v is None else str(v)


def collect_services(sites: Iterable[Site] | None, service_type: ServiceType | str) -> List[CollectedService]:
    """
    All services of one type, in site, building, service order.
    The service's own fields win over the site/building labels on a key clash.
    """
    wanted = getattr(service_type, "value", service_type)
    if not wanted:
        return []
    items: List[CollectedService] = []
    for site in sites or []:
        for building in site.buildings:
            for service in building.services:
                if service.type != wanted:
                    continue
                context = {
                    "site_name": site.site_name or "",
                    "site_id": site.simpro_site_id,
                    "building_id": building.id,
                    "building_name": building.name or None,
                }
                items.append(CollectedService(**{**context, **service.model_dump(exclude_none=True)}))
    return items


def site_names(sites: Iterable[Site] | None) -> List[str]:
    """One site name per building; a site with three buildings is listed three times."""
    return [site.site_name or "" for site in sites or [] for _ in site.buildings]
