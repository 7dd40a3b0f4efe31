"""Protean Engine runner for the inventory domain.

Starts the Engine workers that process events asynchronously:
- OutboxProcessor: polls the outbox table, publishes events to the broker
- StreamSubscriptions: invokes projectors (item stock, movement ledger,
  allocation view) and the Rentals event handlers

Usage:
    python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    from inventory.domain import inventory

    inventory.init()
    return inventory


async def run():
    engine = Engine(_get_domain())
    await asyncio.gather(engine.run())


def main():
    argparse.ArgumentParser(description="DishLedger Engine runner").parse_args()
    asyncio.run(run())


if __name__ == "__main__":
    main()
