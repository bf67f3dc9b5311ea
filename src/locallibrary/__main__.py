import argparse
import logging
import socket

import uvicorn

from .config import Settings, get_settings
from .core import create_app
from .local import LocalLibrary
from .models import cover_or_placeholder


def find_free_port(host: str, starting_port: int) -> int:
    port = starting_port
    while True:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            result = s.connect_ex((host, port))
            if result != 0:  # nothing listening
                return port
            port += 1


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="locallibrary", description="Personal book library"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="use the standalone library instead of starting the server",
    )
    parser.add_argument("--search", default="", help="filter by title or author")
    parser.add_argument("--category", default="", help="filter by category")
    parser.add_argument(
        "--toggle-theme", action="store_true", help="switch light/dark theme"
    )
    return parser.parse_args(argv)


def run_demo(args: argparse.Namespace, settings: Settings):
    library = LocalLibrary.from_settings(settings)
    if args.toggle_theme:
        library.toggle_theme()
    print(f"theme: {library.theme}")
    books = library.list_books(args.search, args.category)
    if not books:
        print("No books found. Add one to get started!")
    for book in books:
        print(
            f"{book.id}\t{book.title}\tby {book.author}\t[{book.category}]\t"
            f"{cover_or_placeholder(book.cover)}"
        )


def main(argv=None, settings: Settings | None = None):
    args = parse_args(argv)
    if settings is None:
        settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.demo:
        run_demo(args, settings)
        return
    port = find_free_port(settings.host, settings.port)
    logging.getLogger(__name__).info(
        "backend running on http://%s:%d", settings.host, port
    )
    uvicorn.run(create_app(settings), host=settings.host, port=port)


if __name__ == "__main__":
    main()
