"""Static catalog of districts and their coordinates."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from advisor.errors import RegionCatalogError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="regions")


@dataclass(frozen=True)
class Region:
    """A named district with a fixed representative coordinate."""
    name: str
    latitude: float
    longitude: float

    @property
    def coordinate(self) -> tuple[float, float]:
        return self.latitude, self.longitude


class RegionCatalog(Protocol):
    """Anything that can list regions in a stable order."""

    def load_regions(self) -> List[Region]:
        """Return every region, in catalog order."""
        ...


def find_region(regions: List[Region], name: str) -> Optional[Region]:
    """Case-insensitive lookup by region name."""
    wanted = name.casefold()
    for region in regions:
        if region.name.casefold() == wanted:
            return region
    return None


def _parse_region(item: dict, index: int) -> Region:
    """Build a Region from one dataset entry; lat/long may be strings or numbers."""
    try:
        name = item["name"]
        lat = float(item["lat"])
        lon = float(item["long"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RegionCatalogError(f"Invalid district entry at index {index}: {item!r}") from exc
    if not isinstance(name, str) or not name.strip():
        raise RegionCatalogError(f"District entry at index {index} has no name")
    return Region(name=name, latitude=lat, longitude=lon)


def load_regions_file(path: Path) -> List[Region]:
    """Read a ``{"districts": [...]}`` JSON file into regions, preserving file order."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise RegionCatalogError(f"District dataset not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise RegionCatalogError(f"District dataset unreadable: {path}") from exc

    items = raw.get("districts") if isinstance(raw, dict) else None
    if not isinstance(items, list) or not items:
        raise RegionCatalogError(f"District dataset has no 'districts' list: {path}")

    return [_parse_region(item, i) for i, item in enumerate(items)]


class JsonRegionCatalog(RegionCatalog):
    """Catalog backed by a JSON file, loaded once at construction."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._regions = tuple(load_regions_file(self.path))
        logger.info("Loaded district catalog", extra={"path": str(self.path), "count": len(self._regions)})

    def load_regions(self) -> List[Region]:
        return list(self._regions)


class StaticRegionCatalog(RegionCatalog):
    """In-memory catalog, mostly for tests and scripted runs."""

    def __init__(self, regions: List[Region]) -> None:
        self._regions = tuple(regions)

    def load_regions(self) -> List[Region]:
        return list(self._regions)
