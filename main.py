#!/usr/bin/env python3
"""
Main entry point for the Habit Calendar reminders service
"""

import asyncio
import logging
import sys

from habit_calendar.app import main


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Reminders stopped")
    except Exception as e:
        logging.error(f"Reminders crashed with error: {e}")
        sys.exit(1)
