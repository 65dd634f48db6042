"""
Site CMS - Development / process entry point

Run the long-lived server (mode B):

    sitecms --port 3000
    python -m sitecms --mode serverless --reload

Command-line flags override the matching environment variables.
"""

import argparse
import os

import uvicorn

from sitecms.config import VALID_MODES


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sitecms",
        description="Serve the site and its content/upload API",
    )
    parser.add_argument("--host", help="Interface to bind (env: HOST)")
    parser.add_argument("--port", type=int, help="Port to listen on (env: PORT)")
    parser.add_argument(
        "--mode",
        choices=sorted(VALID_MODES),
        help="Storage mode (env: CMS_MODE)",
    )
    parser.add_argument(
        "--reload", action="store_true", help="Restart on code changes (development)"
    )
    args = parser.parse_args(argv)

    # The app is imported by uvicorn in (possibly) another process, so the
    # overrides travel through the environment.
    if args.host:
        os.environ["HOST"] = args.host
    if args.port:
        os.environ["PORT"] = str(args.port)
    if args.mode:
        os.environ["CMS_MODE"] = args.mode

    uvicorn.run(
        "sitecms.server:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        reload=args.reload,
        log_level="info",
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
