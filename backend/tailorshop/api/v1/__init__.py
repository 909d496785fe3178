"""
API v1 package initialization.

Routers for the rental desk, garment inventory and billing statistics.
"""

from tailorshop.api.v1.billing import router as billing_router
from tailorshop.api.v1.inventory import router as inventory_router
from tailorshop.api.v1.rentals import router as rentals_router

__all__ = ["billing_router", "inventory_router", "rentals_router"]
