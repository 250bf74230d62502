"""classlens - Entry Point."""

import argparse
import sys

from config import load_config
from utils.crash import configure as configure_crash, install_crash_handler


def build_parser(config):
    parser = argparse.ArgumentParser(prog="classlens", description="Inspect compiled JVM class files and Android DEX files.")
    parser.add_argument("command", nargs="?", choices=("dump", "serve"), default="dump",
                        help="dump a class or DEX file (default) or serve the HTTP inspector")
    parser.add_argument("-p", "--path", default=config.inspector.default_path,
                        help="class or DEX file to read (default: %(default)s)")
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument("-c", "--class", dest="as_class", action="store_true",
                      help="treat the input as a class file (the default)")
    kind.add_argument("-d", "--dex", action="store_true", help="treat the input as an Android DEX file")
    return parser


def run_dump(path, dex=False):
    from core.errors import ClassFormatError

    if dex:
        from dex import load
    else:
        from classfile import load

    try:
        text = load(path).render()
    except FileNotFoundError:
        print(f"error: no such file: {path}", file=sys.stderr)
        return 1
    except ClassFormatError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(text)
    return 0


def run_serve(config):
    import uvicorn

    uvicorn.run("ui.app:create_app", factory=True, host=config.server.host, port=config.server.port)
    return 0


def main(argv=None):
    config = load_config()
    configure_crash(config.logging.crash_file)
    install_crash_handler()

    from internal.logging import LogLevel, StructuredLogger
    StructuredLogger.configure(min_level=LogLevel.parse(config.logging.level))

    args = build_parser(config).parse_args(argv)
    if args.command == "serve":
        return run_serve(config)
    return run_dump(args.path, dex=args.dex)


if __name__ == "__main__":
    sys.exit(main())
