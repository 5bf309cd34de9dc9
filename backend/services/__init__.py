"""Backend services."""

from services.collector import CollectedService, collect_services, site_names
from services.normalizer import parse_date_au, parse_price, safe_join, today_au

__all__ = [
    "CollectedService",
    "collect_services",
    "site_names",
    "parse_date_au",
    "parse_price",
    "safe_join",
    "today_au",
]
