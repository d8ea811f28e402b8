"""Loading the site catalog that drives a crawl run."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from helsinki_deals.config import settings
from helsinki_deals.ingest.base import Site

logger = logging.getLogger(__name__)

BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "stores.json"

_site_list_adapter = TypeAdapter(List[Site])


class CatalogError(Exception):
    """The catalog could not be read. Fatal for a crawl run."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read catalog {path}: {reason}")


def resolve_catalog_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path:
        return Path(path)
    if settings.catalog_path:
        return Path(settings.catalog_path)
    return BUNDLED_CATALOG


def load_catalog(path: Optional[Union[str, Path]] = None) -> List[Site]:
    """
    Load and validate the site catalog.

    Args:
        path: Catalog JSON file. Defaults to ``settings.catalog_path`` and then
              to the catalog bundled with the package.

    Returns:
        Sites in file order

    Raises:
        CatalogError: If the file is missing, malformed or invalid
    """
    catalog_path = resolve_catalog_path(path)

    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogError(catalog_path, str(e)) from e
    except json.JSONDecodeError as e:
        raise CatalogError(catalog_path, f"invalid JSON: {e}") from e

    try:
        sites = _site_list_adapter.validate_python(raw)
    except ValidationError as e:
        raise CatalogError(catalog_path, f"{e.error_count()} validation error(s): {e}") from e

    seen = set()
    for site in sites:
        if site.id in seen:
            raise CatalogError(catalog_path, f"duplicate site id '{site.id}'")
        seen.add(site.id)

    logger.info(f"Loaded {len(sites)} sites from {catalog_path}")
    return sites
