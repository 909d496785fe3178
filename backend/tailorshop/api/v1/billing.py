"""Billing statistics endpoint."""

from fastapi import APIRouter

from tailorshop.api.deps import BillingServiceDep
from tailorshop.schemas.billing import BillingStatisticsResponse

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get(
    "/statistics",
    response_model=BillingStatisticsResponse,
    summary="Billing statistics",
    description="Paid, partially paid and unpaid counts with collected and pending revenue",
)
async def get_billing_statistics(service: BillingServiceDep) -> BillingStatisticsResponse:
    return BillingStatisticsResponse(**await service.get_statistics())
