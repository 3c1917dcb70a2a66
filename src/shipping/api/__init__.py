"""Shipping domain API package."""

from shipping.api.routes import ndr_router, shipment_router, webhook_router

__all__ = ["webhook_router", "shipment_router", "ndr_router"]
