"""Command line interface for parsing and standardizing addresses. Use --help for usage."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

from pydantic import BaseModel

from usps_client.bulk import BulkProcessor
from usps_client.config import ClientConfig, load_config
from usps_client.errors import USPSError
from usps_client.logging.setup import setup_logging
from usps_client.models import AddressRequest, CityStateRequest, ZIPCodeRequest
from usps_client.parser import ParsedAddress, parse

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _dump_model(model: BaseModel | None) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _parsed_to_dict(parsed: ParsedAddress) -> dict[str, Any]:
    return {
        "address": parsed.address.to_dict(),
        "lines": parsed.address.format_lines(),
        "diagnostics": [d.to_dict() for d in parsed.diagnostics],
    }


def _write_json(data: Any, out: TextIO, pretty: bool = True) -> None:
    out.write(json.dumps(data, indent=2 if pretty else None))
    out.write("\n")


def _address_fields(args: argparse.Namespace) -> dict[str, str]:
    fields = {
        "firm": args.firm,
        "street_address": args.street,
        "secondary_address": args.secondary,
        "city": args.city,
        "state": args.state,
        "zip_code": args.zip,
        "zip_plus4": args.zip4,
    }
    if args.text:
        parsed = parse(args.text)
        if not parsed.ok:
            raise USPSError(
                "could not parse address: "
                + "; ".join(d.message for d in parsed.errors)
            )
        canonical = parsed.address.to_dict()
        fields = {
            "firm": args.firm or parsed.address.firm,
            "street_address": args.street or canonical["streetAddress"],
            "secondary_address": args.secondary or canonical["secondaryAddress"],
            "city": args.city or canonical["city"],
            "state": args.state or canonical["state"],
            "zip_code": args.zip or canonical["ZIPCode"],
            "zip_plus4": args.zip4 or canonical["ZIPPlus4"],
        }
    return {k: v or "" for k, v in fields.items()}


def cmd_parse(args: argparse.Namespace, out: TextIO) -> int:
    parsed = parse(args.text)
    _write_json(_parsed_to_dict(parsed), out)
    return EXIT_OK if parsed.ok else EXIT_FAILURE


async def _run_address(config: ClientConfig, args: argparse.Namespace, out: TextIO) -> int:
    request = AddressRequest(urbanization=args.urbanization or "", **_address_fields(args))
    async with config.create_client() as client:
        response = await client.get_address(request)
    _write_json(_dump_model(response), out)
    return EXIT_OK


async def _run_city_state(config: ClientConfig, args: argparse.Namespace, out: TextIO) -> int:
    request = CityStateRequest(zip_code=args.zip_code)
    async with config.create_client() as client:
        response = await client.get_city_state(request)
    _write_json(_dump_model(response), out)
    return EXIT_OK


async def _run_zip_code(config: ClientConfig, args: argparse.Namespace, out: TextIO) -> int:
    request = ZIPCodeRequest(**_address_fields(args))
    async with config.create_client() as client:
        response = await client.get_zip_code(request)
    _write_json(_dump_model(response), out)
    return EXIT_OK


def _read_lines(path: str) -> list[str]:
    if path == "-":
        return [line.strip() for line in sys.stdin]
    try:
        with open(path, encoding="utf-8") as f:
            return [line.strip() for line in f]
    except OSError as e:
        raise USPSError(f"cannot read {path}: {e}", cause=e) from e


async def _run_bulk(config: ClientConfig, args: argparse.Namespace, out: TextIO) -> int:
    lines = [line for line in _read_lines(args.file) if line]
    parsed = [parse(line) for line in lines]

    # Only lines that parsed cleanly are sent to the service
    sendable = [i for i, p in enumerate(parsed) if p.ok]
    requests = [parsed[i].to_address_request() for i in sendable]

    def on_progress(completed: int, total: int, error: Exception | None) -> None:
        logger.debug(
            "Bulk progress",
            extra={"completed": completed, "total": total, "error_message": str(error) if error else None},
        )

    results_by_line = {}
    if requests:
        bulk_config = config.bulk.to_bulk_config(progress_callback=on_progress)
        async with config.create_client() as client:
            processor = BulkProcessor(client, bulk_config)
            results = await processor.process_addresses(requests)
        for result in results:
            results_by_line[sendable[result.index]] = result

    failures = 0
    for i, line in enumerate(lines):
        record: dict[str, Any] = {
            "line": i + 1,
            "input": line,
            "diagnostics": [d.to_dict() for d in parsed[i].diagnostics],
            "response": None,
            "error": None,
        }
        result = results_by_line.get(i)
        if result is None:
            record["error"] = "address could not be parsed"
            failures += 1
        elif result.error is not None:
            record["error"] = str(result.error)
            failures += 1
        else:
            record["response"] = _dump_model(result.response)
        _write_json(record, out, pretty=False)

    logger.info(
        "Bulk run finished",
        extra={"total_requests": len(lines), "failed": failures, "succeeded": len(lines) - failures},
    )
    return EXIT_OK if failures == 0 else EXIT_FAILURE


_ASYNC_COMMANDS = {
    "address": _run_address,
    "city-state": _run_city_state,
    "zipcode": _run_zip_code,
    "bulk": _run_bulk,
}


def _add_address_arguments(parser: argparse.ArgumentParser, urbanization: bool) -> None:
    parser.add_argument("--text", help="Free-form address, parsed before sending")
    parser.add_argument("--firm", default="")
    parser.add_argument("--street", default="", help="Street address")
    parser.add_argument("--secondary", default="", help="Apartment, suite, unit")
    parser.add_argument("--city", default="")
    parser.add_argument("--state", default="", help="Two-letter state code")
    parser.add_argument("--zip", default="", help="5-digit ZIP Code")
    parser.add_argument("--zip4", default="", help="ZIP+4 add-on")
    if urbanization:
        parser.add_argument("--urbanization", default="", help="Puerto Rico urbanization")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usps-client",
        description="Parse and standardize US addresses with the USPS Addresses API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse locally, no network
  usps-client parse "123 North Main Street Apt 4B, New York, NY 10001"

  # Standardize an address
  usps-client address --text "123 Main St, Springfield, IL 62704"

  # City and state for a ZIP Code
  usps-client city-state 10001

  # Standardize a file of addresses, one per line, JSON lines out
  usps-client bulk addresses.txt > results.jsonl

Credentials come from USPS_CLIENT_ID / USPS_CLIENT_SECRET, .env, or config.yaml.
        """,
    )
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console log level (default: WARNING)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse a free-form address locally")
    parse_cmd.add_argument("text", help="Address text, comma separated")

    address_cmd = subparsers.add_parser("address", help="Standardize an address")
    _add_address_arguments(address_cmd, urbanization=True)

    city_state_cmd = subparsers.add_parser("city-state", help="Look up city and state for a ZIP Code")
    city_state_cmd.add_argument("zip_code", help="5-digit ZIP Code")

    zipcode_cmd = subparsers.add_parser("zipcode", help="Look up the ZIP Code for an address")
    _add_address_arguments(zipcode_cmd, urbanization=False)

    bulk_cmd = subparsers.add_parser("bulk", help="Standardize addresses from a file, one per line")
    bulk_cmd.add_argument("file", help="Input file, or - for stdin")

    return parser


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, json_format=args.json_logs)

    try:
        if args.command == "parse":
            return cmd_parse(args, out)

        config = load_config(args.config)
        return asyncio.run(_ASYNC_COMMANDS[args.command](config, args, out))

    except USPSError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


__all__ = [
    "build_parser",
    "main",
]
