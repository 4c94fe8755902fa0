#!/usr/bin/env python3
from __future__ import annotations

import argparse
import platform
import sys
from importlib.metadata import PackageNotFoundError, version

from loguru import logger

from javaclass.errors import JarError
from javaclass.naming import average_name_lengths_for_jar

from .config import IdentifyConfig
from .hasher import hash_class_entry
from .identify import Identifier
from .tables import JNDI_MANAGER_CLASS

try:
    __version__ = version("log4j-fingerprint")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0+unknown"


def print_info():
    print("log4j-fingerprint")
    print(__version__)
    print("bytecode signatures, class and bytecode md5")
    print(
        f"{platform.system()} {platform.release()} ({platform.machine()}), Python {platform.python_version()}"
    )


def setup_logging(debug: bool = False):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format="[{level}] {message}")
    logger.debug(f"Logging initialized (debug={debug})")


def pr(label, val):
    print(f"{label};{val}")


def cmd_identify(args) -> int:
    config = IdentifyConfig.from_json(args.config) if args.config else IdentifyConfig()
    if config.debug:
        setup_logging(True)
    if args.priority:
        config.priority = args.priority
    if args.no_hashes:
        config.use_content_hash = False
        config.use_instruction_hash = False
    identifier = Identifier(config)
    status = 0
    for jar in args.jars:
        result = identifier.identify(jar, args.class_name or config.class_name)
        pr(jar, f"{result.version};{result.source or '-'}")
        if len(result.candidates) > 1:
            pr("candidates", ",".join(result.candidates))
        if not result.matched:
            status = 1
    return status


def cmd_hash(args) -> int:
    for jar in args.jars:
        h = hash_class_entry(jar, args.class_name or JNDI_MANAGER_CLASS)
        pr(jar, f"{h.size};{h.content_digest};{h.instruction_digest}")
    return 0


def cmd_names(args) -> int:
    for jar in args.jars:
        sizes = average_name_lengths_for_jar(jar)
        pr(jar, f"{sizes.package_name:.2f};{sizes.class_name:.2f}")
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser("log4j-fingerprint")
    parser.add_argument(
        "--info", action="store_true", help="Print tool info and exit"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    identify = sub.add_parser("identify", help="Identify the Log4j version a JAR was built from")
    identify.add_argument("jars", nargs="+", help="JAR files to inspect")
    identify.add_argument("--class", dest="class_name", help=f"Class to fingerprint (default {JNDI_MANAGER_CLASS})")
    identify.add_argument("--config", help="JSON file with IdentifyConfig overrides")
    identify.add_argument("--priority", choices=["specificity", "declared"], help="Tie-break between matching versions")
    identify.add_argument("--no-hashes", action="store_true", help="Skip the digest tables, match signatures only")
    identify.set_defaults(func=cmd_identify)

    hashes = sub.add_parser("hash", help="Print size, class md5 and bytecode md5 of a class, for the tables")
    hashes.add_argument("jars", nargs="+")
    hashes.add_argument("--class", dest="class_name")
    hashes.set_defaults(func=cmd_hash)

    names = sub.add_parser("names", help="Print average package and class name lengths")
    names.add_argument("jars", nargs="+")
    names.set_defaults(func=cmd_names)
    return parser, parser.parse_args(argv)


def main(argv=None) -> int:
    parser, args = parse_args(argv)
    setup_logging(args.debug)

    if args.info:
        print_info()
        return 0
    if not args.command:
        parser.print_usage(sys.stderr)
        return 2

    try:
        return args.func(args)
    except (JarError, ValueError) as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
