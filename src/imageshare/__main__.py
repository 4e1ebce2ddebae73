"""Command line entry point."""

import argparse
import os

import uvicorn


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="ImageShare - upload images and share them with a QR code",
    )
    parser.add_argument(
        "--delay",
        type=int,
        help="minutes before an uploaded image is deleted (default: 2)",
    )
    parser.add_argument(
        "--dir",
        help="keep uploads in this directory instead; they are never deleted",
    )
    parser.add_argument("--host", default="0.0.0.0", help="address to bind")  # noqa: S104
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    args = parser.parse_args(argv)

    # Settings are read from the environment when the app starts
    if args.delay is not None:
        os.environ["DELETE_DELAY"] = str(args.delay)
    if args.dir:
        os.environ["EXTERNAL_DIR"] = args.dir

    uvicorn.run("imageshare.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
