import argparse
import logging
import sys

from duckscript import api
from duckscript.errors import DuckscriptError


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="duckscript", description="Type check a script, or show the type at a position."
    )
    parser.add_argument("file", type=argparse.FileType("r"))
    parser.add_argument("line", type=int, nargs="?")
    parser.add_argument("column", type=int, nargs="?", help="1-indexed character")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    with args.file:
        source = args.file.read()

    if args.line is not None:
        if args.column is None:
            parser.error("a line needs a column")
        print(api.get_type(source, args.line, args.column))
        return 0

    try:
        api.validate(source)
    except DuckscriptError as e:
        print(e)
        return 1
    print("ok")
    return 0


if __name__ == "__main__":
    sys.exit(main())
