"""CLI entry point for the alert worker."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from alertbridge.config import settings
from alertbridge.logging_config import configure_logging
from alertbridge.models.alert import AlertMessage
from alertbridge.stores.config_store import FileConfigStore
from alertbridge.stores.secret_store import EnvSecretStore
from alertbridge.workers.alert_processor import AlertProcessor


def build_processor(config_dir: str) -> AlertProcessor:
    return AlertProcessor(FileConfigStore(config_dir), EnvSecretStore())


async def _run_worker(config_dir: str, redis_url: str) -> None:
    import redis.asyncio as aioredis

    from alertbridge.workers.worker import AlertWorker

    redis = aioredis.from_url(redis_url, decode_responses=True)
    try:
        await AlertWorker(build_processor(config_dir), redis).run()
    finally:
        await redis.aclose()


async def _process_file(config_dir: str, path: Path) -> int:
    message = AlertMessage.model_validate_json(path.read_text(encoding="utf-8"))
    result = await build_processor(config_dir).process(message)
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="alertbridge-worker",
        description="Turn GitHub security alerts into Jira issues",
    )
    parser.add_argument(
        "--config-dir",
        default=settings.config_dir,
        help=f"Directory of <org>.json tenant configs (default: {settings.config_dir})",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--console-logs", action="store_true", help="Human-readable logs instead of JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Consume alert queues until interrupted")
    run.add_argument("--redis-url", default=settings.redis_url)

    process = sub.add_parser("process", help="Process one queued-message JSON file")
    process.add_argument("file", type=Path)

    args = parser.parse_args(argv)
    configure_logging(log_level=args.log_level, json_output=settings.json_logs and not args.console_logs)

    if args.command == "run":
        try:
            asyncio.run(_run_worker(args.config_dir, args.redis_url))
        except KeyboardInterrupt:
            pass
        return 0
    return asyncio.run(_process_file(args.config_dir, args.file))


if __name__ == "__main__":
    sys.exit(main())
