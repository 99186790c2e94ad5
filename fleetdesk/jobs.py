"""
Entry points for periodic work, meant to be run by an external scheduler:

    */15 * * * *  fleetdesk-complete-elapsed
"""

import logging

from fleetdesk.database import session_scope
from fleetdesk.services.booking_service import booking_service

logger = logging.getLogger(__name__)


def complete_elapsed_bookings() -> int:
    """Move every approved booking that has ended, in all organizations, to completed."""
    with session_scope() as db:
        count = booking_service.complete_elapsed(db)
    logger.info(f"complete-elapsed run finished: {count} booking(s) completed")
    return count


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    complete_elapsed_bookings()


if __name__ == "__main__":
    main()
