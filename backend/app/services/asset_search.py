# backend/app/services/asset_search.py
"""
Asset search over the static catalog.

Backs the "add asset" search box: case-insensitive substring match on
symbol or name, optionally restricted to one asset type.
"""

from dataclasses import dataclass

from app.models import AssetType
from app.services.constants import ASSET_CATALOG


@dataclass(frozen=True)
class CatalogEntry:
    symbol: str
    name: str
    asset_type: AssetType
    icon: str


_ENTRIES: tuple[CatalogEntry, ...] = tuple(CatalogEntry(*row) for row in ASSET_CATALOG)
_BY_SYMBOL: dict[str, CatalogEntry] = {entry.symbol: entry for entry in _ENTRIES}


def catalog_entry(symbol: str) -> CatalogEntry | None:
    return _BY_SYMBOL.get(symbol.strip().upper())


def search_assets(query: str | None = None, asset_type: AssetType | None = None) -> list[CatalogEntry]:
    """
    Args:
        query: Substring of symbol or name; empty matches everything
        asset_type: Restrict results to one type

    Returns:
        Matching entries in catalog order
    """
    needle = (query or "").strip().lower()
    return [
        entry for entry in _ENTRIES
        if (asset_type is None or entry.asset_type == asset_type)
        and (not needle or needle in entry.symbol.lower() or needle in entry.name.lower())
    ]
