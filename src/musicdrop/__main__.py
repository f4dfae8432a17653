"""Command-line entry point: `python -m musicdrop` or the `musicdrop` script."""

import argparse

import uvicorn

from musicdrop.config import get_settings


def main(argv: list[str] | None = None) -> None:
    """Run the API server with uvicorn."""
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="musicdrop", description=__doc__)
    parser.add_argument("--host", default=settings.api.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.api.port, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args(argv)

    uvicorn.run(
        "musicdrop.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
