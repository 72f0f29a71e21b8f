"""
Run the library API under uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from library_backend.config import get_settings

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Personal library API server")
    parser.add_argument(
        "--host",
        type=str,
        default=settings.api_host,
        help="Interface to bind",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=settings.api_port,
        help="Port to listen on",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level, e.g. DEBUG or INFO",
    )
    args = parser.parse_args()

    log_level = args.log_level.upper()
    logging.basicConfig(
        level=log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    import uvicorn

    logger.info("Starting library API on %s:%d", args.host, args.port)
    uvicorn.run(
        "library_backend.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
