"""Storegate CLI - deterministic naming tools for operators.

Usage:
    python -m storegate resolve --client-id ID --environment ENV --file-name NAME
        [--directory DIR] [--duplicate-strategy CODE] [--version N]
        [--bucket-strategy CODE]
    python -m storegate validate-path PATH
    python -m storegate buckets --client-id ID
    python -m storegate serve [--host HOST] [--port PORT]

Configuration is read from STOREGATE_* environment variables; the flags
above override individual values for a single invocation.

Exit codes:
    0: Success / path valid
    1: Internal error (unexpected)
    2: Invalid input / path rejected
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from typing import Any

from storegate.storage.config import load_storage_config
from storegate.storage.errors import InvalidPathError, ObjectStorageError
from storegate.storage.key_resolver import KeyResolver
from storegate.storage.models import BucketStrategy, DuplicateFileStrategy, Environment
from storegate.storage.path_sanitizer import sanitize_path


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _invalid_input(code: str, message: str) -> int:
    _output_json(_make_error_result(code, message))
    return 2


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve the bucket and key a file would be stored under."""
    try:
        environment = Environment.from_value(args.environment)
        policy = (
            DuplicateFileStrategy.from_code(args.duplicate_strategy)
            if args.duplicate_strategy
            else None
        )
    except ValueError as e:
        return _invalid_input("INVALID_ARGUMENT", str(e))

    try:
        config = load_storage_config()
        if args.bucket_strategy:
            config = dataclasses.replace(
                config, bucket_strategy=BucketStrategy.from_code(args.bucket_strategy)
            )
        location = KeyResolver(config).resolve(
            args.client_id,
            environment,
            args.directory,
            args.file_name,
            policy,
            args.version,
        )
    except InvalidPathError as e:
        return _invalid_input("INVALID_PATH", str(e))
    except ObjectStorageError as e:
        return _invalid_input(type(e).__name__, e.message)

    _output_json(location.to_dict())
    return 0


def cmd_validate_path(args: argparse.Namespace) -> int:
    """Report whether a path passes the sanitizer."""
    try:
        sanitized = sanitize_path(args.path)
    except InvalidPathError as e:
        _output_json({"valid": False, "sanitized": None, "check": e.check})
        return 2

    _output_json({"valid": True, "sanitized": str(sanitized), "check": None})
    return 0


def cmd_buckets(args: argparse.Namespace) -> int:
    """Show the bucket and prefix for a client in every environment."""
    try:
        mapping = KeyResolver(load_storage_config()).bucket_mapping(args.client_id)
    except ObjectStorageError as e:
        return _invalid_input(type(e).__name__, e.message)

    _output_json(
        {
            "client_id": mapping.client_id,
            "bucket_strategy": mapping.bucket_strategy.value,
            "buckets": mapping.buckets,
            "prefixes": mapping.prefixes,
        }
    )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP API."""
    try:
        config = load_storage_config()
    except ObjectStorageError as e:
        return _invalid_input(type(e).__name__, e.message)

    import uvicorn

    from storegate.api.main import create_app
    from storegate.storage.service import StorageService, create_gateway

    app = create_app(service=StorageService(config, create_gateway(config)))
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storegate",
        description="Storegate - multi-tenant object storage naming CLI",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the bucket and object key for a file",
    )
    resolve_parser.add_argument("--client-id", required=True, help="Client identifier")
    resolve_parser.add_argument(
        "--environment",
        required=True,
        help="Environment (dev, staging, prod, test, uat)",
    )
    resolve_parser.add_argument("--file-name", required=True, help="File name")
    resolve_parser.add_argument("--directory", default=None, help="Directory under the prefix")
    resolve_parser.add_argument(
        "--duplicate-strategy",
        default=None,
        metavar="CODE",
        help="overwrite, uuid, timestamp, version or reject (default: configured)",
    )
    resolve_parser.add_argument(
        "--version",
        type=int,
        default=None,
        help="Version number for the version strategy",
    )
    resolve_parser.add_argument(
        "--bucket-strategy",
        default=None,
        metavar="CODE",
        help="shared-prefix, per-client or per-client-env (default: configured)",
    )

    validate_parser = subparsers.add_parser(
        "validate-path",
        help="Check a path against the sanitizer",
    )
    validate_parser.add_argument("path", help="Path to validate")

    buckets_parser = subparsers.add_parser(
        "buckets",
        help="Show bucket mapping for a client across environments",
    )
    buckets_parser.add_argument("--client-id", required=True, help="Client identifier")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000, help="Port to listen on (default: 8000)"
    )

    return parser


_COMMANDS = {
    "resolve": cmd_resolve,
    "validate-path": cmd_validate_path,
    "buckets": cmd_buckets,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success / path valid
        1: Internal error (unexpected)
        2: Invalid input / path rejected
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        return _COMMANDS[args.command](args)

    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
