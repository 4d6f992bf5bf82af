# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/demo/__main__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Run the demo user service on port 40061.

Usage:
    python -m grpcinvoker.demo
"""

# Standard
import asyncio

# First-Party
from grpcinvoker.demo.server import DemoServer
from grpcinvoker.services.logging_service import LoggingService


def main() -> None:
    """Serve until interrupted."""
    logging_service = LoggingService()
    asyncio.run(logging_service.initialize())
    logger = logging_service.get_logger("grpcinvoker.demo")

    server = DemoServer().start()
    try:
        server.wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.stop(grace=1.0)
        asyncio.run(logging_service.shutdown())


if __name__ == "__main__":
    main()
