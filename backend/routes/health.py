"""Readiness check route."""

from fastapi import APIRouter, Depends, Request

from routes.lookup import get_quote_service
from services.quotes import QuoteService

router = APIRouter()


@router.get("/ready")
def ready(request: Request, service: QuoteService = Depends(get_quote_service)) -> dict:
    """Lightweight readiness check, no external calls."""
    return {
        "status": "ok",
        "service": "quote-cache",
        "commit": request.app.state.settings.git_sha,
        "cache": service.backends,
    }
