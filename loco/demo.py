#!/usr/bin/env python3
"""Demo module for LOCO functionality."""

import asyncio
import logging
import sys

from . import CheckinRequest, LocoError, get_booking_data, get_checkin_data


async def run_demo():
    """Fetch the booking configuration and a checkin ticket from the live services."""
    print("LOCO Demo - Booking and Ticket services")
    print("=" * 40)

    # GETCONF over TLS
    print("Requesting GETCONF from the booking service...")
    conf = await get_booking_data(timeout=10.0)
    print(f"Revision: {conf.revision}")
    print(f"Ticket hosts: {conf.ticket.lsl}")
    print(f"Wifi ports: {conf.wifi.ports}")

    # CHECKIN over a secure session
    print("Requesting CHECKIN from the ticket service...")
    checkin = await get_checkin_data(CheckinRequest(user_id=1), timeout=10.0)
    print(f"Chat server: {checkin.host}:{checkin.port}")
    print(f"Video server: {checkin.vsshost}:{checkin.vssport}")

    print("\nDemo completed!")


def main():
    """Main entry point for the demo."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run_demo())
    except LocoError as exc:
        print(f"Demo failed: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
