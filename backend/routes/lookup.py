"""Quote lookup route.

GET /api/lookup/?sym=AAPL,XAU → JSON array of quotes, in request order.

The handler is a plain ``def`` so each request runs on its own worker thread;
provider calls block only the request that made them.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from schemas import Quote
from services.quotes import QuoteService, parse_symbols

logger = logging.getLogger(__name__)

router = APIRouter()


def get_quote_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


@router.get("/api/lookup/", response_model=list[Quote])
def lookup(
    sym: str | None = Query(None),
    service: QuoteService = Depends(get_quote_service),
) -> list[Quote]:
    """Quotes for a comma-separated list of symbols. Unknown symbols are omitted."""
    symbols = parse_symbols(sym)
    quotes = service.lookup(symbols)
    logger.info("Lookup %s: %d of %d symbols found", ",".join(symbols), len(quotes), len(symbols))
    return quotes
