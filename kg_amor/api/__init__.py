"""API router."""
from fastapi import APIRouter, Depends

from ..security import verify_auth
from . import catalog, cells, dashboard, networks, receipts, stock, withdrawals

api_router = APIRouter(prefix="/api", dependencies=[Depends(verify_auth)])

api_router.include_router(networks.router)
api_router.include_router(cells.router)
api_router.include_router(catalog.router)
api_router.include_router(receipts.router)
api_router.include_router(withdrawals.router)
api_router.include_router(stock.router)
api_router.include_router(dashboard.router)

__all__ = ["api_router"]
