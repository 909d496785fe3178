"""
FastAPI dependencies for database sessions, staff attribution and services.

Authentication is handled outside this service; an optional X-Staff-Id
header names the staff member acting, and is recorded on history rows and
damage records.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from tailorshop.core.logging import get_logger, set_staff_id
from tailorshop.database.connection import get_db
from tailorshop.services.billing.service import BillingService
from tailorshop.services.rentals.service import RentalService

logger = get_logger(__name__)


async def get_staff_id(
    x_staff_id: Annotated[Optional[str], Header(max_length=100)] = None,
) -> Optional[str]:
    """
    Read the acting staff member from the X-Staff-Id header.

    Binds the id to the logging context so every event of the request
    carries it.

    Returns:
        Staff id, or None for anonymous calls
    """
    staff_id = x_staff_id.strip() if x_staff_id else None
    if staff_id:
        set_staff_id(staff_id)
    return staff_id or None


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
StaffId = Annotated[Optional[str], Depends(get_staff_id)]


async def get_rental_service(db: DatabaseSession) -> RentalService:
    return RentalService(db)


async def get_billing_service(db: DatabaseSession) -> BillingService:
    return BillingService(db)


RentalServiceDep = Annotated[RentalService, Depends(get_rental_service)]
BillingServiceDep = Annotated[BillingService, Depends(get_billing_service)]
