"""Run the API server: python -m app [--host HOST] [--port PORT]."""

import argparse

import uvicorn

from figma_builder import config


def main() -> None:
    parser = argparse.ArgumentParser(description="Figma component builder API server")
    parser.add_argument("--host", default=config.API_HOST)
    parser.add_argument("--port", type=int, default=config.API_PORT)
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
