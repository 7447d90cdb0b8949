"""
Quickstart example application for zexcore.

Demonstrates:
1. Initializing a session from ZEXCORE_* environment variables
2. Mirroring console output and standard logging into zexcore
3. Sending an application event

Run with ZEXCORE_API_KEY, ZEXCORE_PROJECT_ID and ZEXCORE_ENDPOINT set.
"""

import asyncio
import logging

from zexcore_client import ZexcoreOptions, ZexcoreSession, hook_with_console, setup_logging


async def main() -> None:
  session = ZexcoreSession()
  project = await session.initialize(ZexcoreOptions.from_env())

  console = hook_with_console(session, tags=["quickstart"])
  console.info("Connected to project", project.name)
  console.log("Local-only progress line", False)

  logger = logging.getLogger("quickstart")
  logging.basicConfig(level=logging.INFO)
  setup_logging(session, logger, tags=["quickstart"])

  logger.info("Processing user request")
  try:
    100 / 0
  except ZeroDivisionError:
    logger.exception("Division by zero error occurred")

  await session.log_event("quickstart-finished", data={"ok": True})
  await session.close()


if __name__ == "__main__":
  asyncio.run(main())
