"""Delhivery courier integration."""

from shipping.carrier.delhivery.adapter import DelhiveryAdapter

__all__ = ["DelhiveryAdapter"]
