#!/usr/bin/env python3
"""
Command-line entry point.

Usage:
    python -m prdv_cache load-test --records 10000 --batch-size 100 --concurrency 10
    python -m prdv_cache load-test --backend table --write-mode batch
    python -m prdv_cache verify
    python -m prdv_cache get HM0011000000

Results are printed to stdout as JSON; logs go through structlog.
"""

import argparse
import asyncio
import sys

import orjson

from prdv_cache.application.services.configuration_service import ConfigurationService
from prdv_cache.application.services.load_test_service import LoadTestService
from prdv_cache.core.config.constants import (
    LOAD_TEST_DEFAULT_BATCH_SIZE,
    LOAD_TEST_DEFAULT_CONCURRENCY,
    LOAD_TEST_DEFAULT_RECORDS,
)
from prdv_cache.core.config.settings import get_settings
from prdv_cache.core.exceptions import PRDVCacheError
from prdv_cache.core.logging.logger import setup_logging
from prdv_cache.infrastructure.cache.factory import create_store
from prdv_cache.infrastructure.codec.record_codec import RecordCodec
from prdv_cache.infrastructure.source.simulated_source import SimulatedConfigurationSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prdv_cache", description="Device configuration cache")
    parser.add_argument(
        "--backend", choices=["memory", "redis", "table"], default=None,
        help="Storage backend (default: STORE_BACKEND)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    load_test = subparsers.add_parser("load-test", help="Run a write-path load test")
    load_test.add_argument("--records", type=int, default=LOAD_TEST_DEFAULT_RECORDS)
    load_test.add_argument("--batch-size", type=int, default=LOAD_TEST_DEFAULT_BATCH_SIZE)
    load_test.add_argument("--concurrency", type=int, default=LOAD_TEST_DEFAULT_CONCURRENCY)
    load_test.add_argument("--write-mode", choices=["item", "batch"], default="item")

    subparsers.add_parser("verify", help="Run a 10-record smoke load test")

    get = subparsers.add_parser("get", help="Look up one device configuration")
    get.add_argument("device_id", metavar="PRDV")

    return parser


def _print_json(payload) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    service = ConfigurationService(create_store(settings, args.backend), SimulatedConfigurationSource())

    try:
        await service.initialize()

        if args.command == "get":
            record = await service.get_configuration(args.device_id)
            if record is None:
                _print_json({"deviceId": args.device_id, "found": False})
                return 1
            _print_json(RecordCodec.to_document(record))
            return 0

        load_test = LoadTestService(service, settings=settings)
        if args.command == "verify":
            report = await load_test.verify()
        else:
            report = await load_test.run_load_test(
                record_count=args.records,
                batch_size=args.batch_size,
                max_concurrency=args.concurrency,
                write_mode=args.write_mode,
            )
        _print_json(report.model_dump(mode="json", by_alias=True))
        return 0 if report.failed_operations == 0 else 1
    finally:
        await service.shutdown()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        return asyncio.run(run(args))
    except PRDVCacheError as e:
        _print_json(e.to_dict())
        return 2


if __name__ == "__main__":
    sys.exit(main())
