"""Payments Service routers."""

from services.payments_service.routers.razorpay import router as payments_router

__all__ = ["payments_router"]
