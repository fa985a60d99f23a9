"""
API Routes Package

This module consolidates all API routes for the redirect checkout service.
"""

from fastapi import APIRouter

from . import checkout

# Create main router
router = APIRouter()

router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])

# Export for use in main application
__all__ = ["router"]
