"""Command-line bootstrap.

    quote-cache -i <quotes.db>    initialize a new store file
    quote-cache <quotes.db>       serve using an existing store file
"""

import argparse
import sys
from pathlib import Path

import uvicorn

from config import settings
from services.entry_store import initialize_database

USAGE = """Usage:

Start webservice using database file:
\tquote-cache <quotes.db>

Initialize new database file:
\tquote-cache -i <quotes.db>
"""


def run_cli(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="quote-cache", description="Serve cached stock and metal quotes")
    parser.add_argument("-i", dest="init_file", metavar="NEW_FILE", help="create and initialize a store file")
    parser.add_argument("dbfile", nargs="?", help="existing store file to serve from")
    args = parser.parse_args(argv)

    if args.init_file:
        try:
            initialize_database(args.init_file)
        except FileExistsError as e:
            print(e, file=sys.stderr)
            return 1
        return 0

    if not args.dbfile:
        print(USAGE)
        return 0

    dbfile = Path(args.dbfile)
    if not dbfile.exists():
        print(
            f"Store file '{dbfile}' doesn't exist. Create one using:\n\tquote-cache -i {dbfile}",
            file=sys.stderr,
        )
        return 1

    settings.cache_db_path = str(dbfile)
    from app import app  # built after the store path is set

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
