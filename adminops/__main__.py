"""Entry point — python -m adminops."""

from __future__ import annotations

import argparse
import asyncio
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adminops",
        description="Administrative commands for managed devices, hosts and audit logs",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration YAML file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging and full tracebacks",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    unisolate = sub.add_parser(
        "unisolate", help="Lift network isolation on a managed device",
    )
    unisolate.add_argument("--device-id", required=True,
                           help="Managed device identifier")
    unisolate.add_argument("--app-id", required=True,
                           help="Application (client) id")
    unisolate.add_argument("--tenant-id", required=True,
                           help="Directory (tenant) id")
    unisolate.add_argument("--thumbprint", required=True,
                           help="Certificate thumbprint")
    unisolate.add_argument("--private-key", default=None,
                           help="PEM private key of the certificate "
                                "(default: credentials.private_key_path)")

    sub.add_parser("facts", help="Print a health summary of this host")

    export = sub.add_parser(
        "audit-export", help="Export data lifecycle audit events to CSV",
    )
    export.add_argument("-o", "--output", default=None,
                        help="CSV path (default: audit_export.export_path)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from adminops.app import Application

    try:
        app = Application(config_path=args.config, verbose=args.verbose)
        app.setup_logging()
    except ValueError as exc:
        print(f"adminops: invalid configuration: {exc}", file=sys.stderr)
        return 2

    if args.command == "unisolate":
        coro = app.unisolate(
            device_id=args.device_id,
            app_id=args.app_id,
            tenant_id=args.tenant_id,
            thumbprint=args.thumbprint,
            private_key=args.private_key,
        )
    elif args.command == "facts":
        coro = app.facts()
    else:
        coro = app.audit_export(output=args.output)

    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
