"""Protean Engine runner for the Shipping domain.

Starts Engine workers that process events asynchronously in production:
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes the NDR and shipment
  event handlers

Usage:
    PROTEAN_ENV=production python src/server.py
    PROTEAN_ENV=production python src/server.py --test-mode
"""

import argparse

from protean.server.engine import Engine
from shipping.domain import shipping
from shipping.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description="ShipStream Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    configure_logging()
    shipping.init()
    engine = Engine(shipping, test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
