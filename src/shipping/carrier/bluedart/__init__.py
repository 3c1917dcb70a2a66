"""BlueDart courier integration."""

from shipping.carrier.bluedart.adapter import BlueDartAdapter

__all__ = ["BlueDartAdapter"]
