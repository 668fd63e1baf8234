"""API Routes module"""
from fastapi import APIRouter

from .vat_quarters import router as vat_quarters_router

# Main API router
api_router = APIRouter()

api_router.include_router(vat_quarters_router, prefix="/vat-quarters", tags=["VAT Quarters"])

__all__ = ["api_router"]
