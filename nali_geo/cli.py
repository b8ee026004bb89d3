#!/usr/bin/env python3
"""Command-line front end for nali-backed IP geolocation."""
from __future__ import annotations

import argparse
import json
from dataclasses import replace
from typing import Iterable

from .config_loader import load_config
from .service import CityLookupFailed, GeoLocationService, ToolUnavailable

EXIT_LOOKUP_FAILED = 1
EXIT_UNAVAILABLE = 3


def _service(args: argparse.Namespace) -> GeoLocationService:
    config = load_config()
    if args.binary:
        config = replace(config, binary=args.binary)
    if args.timeout > 0:
        config = replace(config, timeout=args.timeout)
    return GeoLocationService(config)


def cmd_check(args: argparse.Namespace) -> int:
    service = _service(args)
    ok = service.check_available()
    print(f"{service.config.binary}: {'available' if ok else 'unavailable'}")
    return 0 if ok else 1


def cmd_ensure_ready(args: argparse.Namespace) -> int:
    _service(args).ensure_ready()
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    service = _service(args)
    status = 0
    for ip in args.ips:
        try:
            record = service.resolve(ip)
        except ToolUnavailable as exc:
            print(f"GeoIP lookup failed: {exc}")
            return EXIT_UNAVAILABLE
        except CityLookupFailed as exc:
            status = EXIT_LOOKUP_FAILED
            if args.json:
                print(json.dumps({"ip": ip, "error": str(exc)}, ensure_ascii=False))
            else:
                print(f"{ip} -> lookup failed")
            continue
        if args.json:
            print(json.dumps({"ip": ip, **record.to_dict()}, ensure_ascii=False))
        else:
            print(f"{ip} -> {record.city.value}")
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="IP geolocation via the nali command")
    parser.add_argument("--binary", default="", help="nali executable (default: config or PATH)")
    parser.add_argument("--timeout", type=float, default=0, help="Per-call timeout in seconds")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Report whether nali can be run").set_defaults(func=cmd_check)
    sub.add_parser("ensure-ready", help="Exit with an error unless nali can be run").set_defaults(
        func=cmd_ensure_ready
    )

    lookup = sub.add_parser("lookup", help="Resolve one or more IP addresses")
    lookup.add_argument("ips", nargs="+", help="IP addresses to resolve")
    lookup.add_argument("--json", action="store_true", help="Print one JSON object per IP")
    lookup.set_defaults(func=cmd_lookup)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
