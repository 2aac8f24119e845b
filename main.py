"""
Booking core entry point.

The core is a library: embedding applications build a Repositories bundle
for their storage, then call TenantAdmin and BookingWorkflow. This script
only offers the offline console demo and a configuration dump.

Usage:
    Console demo:  python main.py console
    Show config:   python main.py config
"""

import logging
import sys
from dataclasses import asdict

from booking_core.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Replay the scripted scenarios against in-memory storage."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


def _show_config() -> None:
    for section, values in asdict(settings).items():
        print(f"{section}: {values}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "config":
        _show_config()
    else:
        logger.info("Starting console demo for '%s'", settings.app_name)
        _run_console_mode()
