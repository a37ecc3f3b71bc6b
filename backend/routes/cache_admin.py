"""Administrative cache routes for inspecting and clearing entries."""

import logging

from fastapi import APIRouter, Depends, Response

from errors import EntryNotFoundError
from routes.lookup import get_quote_service
from schemas import CacheEntryInfo
from services.cache import StoreCache, cache_key
from services.quotes import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache")


@router.get("/{section}/{identifier}", response_model=CacheEntryInfo)
def inspect_entry(
    section: str,
    identifier: str,
    service: QuoteService = Depends(get_quote_service),
) -> CacheEntryInfo:
    """Stored row for a key in the durable cache. 404 if there is no such row."""
    for cache in (service.overview_cache, service.price_cache):
        if isinstance(cache, StoreCache):
            return cache.describe(section, identifier)
    raise EntryNotFoundError(cache_key(section, identifier))


@router.delete("/{section}/{identifier}", status_code=204)
def remove_entry(
    section: str,
    identifier: str,
    service: QuoteService = Depends(get_quote_service),
) -> Response:
    service.overview_cache.remove(section, identifier)
    service.price_cache.remove(section, identifier)
    logger.info("Removed cache entry %s", cache_key(section, identifier))
    return Response(status_code=204)


@router.delete("", status_code=204)
def reset_caches(service: QuoteService = Depends(get_quote_service)) -> Response:
    service.overview_cache.reset()
    service.price_cache.reset()
    logger.info("Reset all caches")
    return Response(status_code=204)
