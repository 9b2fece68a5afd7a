"""Command line entry point for the content integrity tools."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

import httpx
from art import text2art
from dotenv import load_dotenv

import settings
from adapters.http_prober import HttpProber
from adapters.report_formatting import link_result_payload, report_payload, to_jsonable
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.wayback_snapshots import WaybackSnapshotIndex
from adapters.webhook_notifier import WebhookNotifier
from adapters.wordpress_posts import WordPressPostLookup
from client import build_client
from core.config import BatchLimits, LinkCheckConfig, RateLimitConfig, ResolverConfig, RetryPolicy, ScheduleConfig
from core.enrichment import ArchiveEnricher
from core.errors import IntegrityError
from core.known_mappings import KnownMappingTable
from core.link_checker import DeadLinkChecker
from core.ports import ReportNotifierPort
from core.rate_limit import FixedWindowRateLimiter
from core.resolver import LegacyUrlResolver
from core.result_cache import ResultCache
from core.schedule import compute_next_run, should_run_now
from core.service import IntegrityService

NAME = "INTEGRITY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    # stdout carries JSON, so the banner goes to stderr.
    print(text2art(NAME, font=FONT), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # Console logs go to stderr so JSON output stays parseable.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/integrity.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _build_service(client: httpx.AsyncClient) -> IntegrityService:
    """Wire adapters into the core from settings."""

    posts = WordPressPostLookup(
        client,
        api_base=settings.WORDPRESS_API_BASE,
        per_page=settings.WORDPRESS_PER_PAGE,
        timeout=settings.WORDPRESS_TIMEOUT,
    )
    resolver = LegacyUrlResolver(
        posts,
        KnownMappingTable(settings.KNOWN_MAPPINGS),
        ResolverConfig(
            acceptance_threshold=settings.ACCEPTANCE_THRESHOLD,
            date_window_days=settings.DATE_WINDOW_DAYS,
            search_confidence=settings.SEARCH_CONFIDENCE,
            slug_variants=settings.SLUG_VARIANTS,
        ),
    )
    link_config = LinkCheckConfig(
        concurrency=settings.CONCURRENCY,
        context_chars=settings.CONTEXT_CHARS,
        internal_hosts=settings.INTERNAL_HOSTS,
        scan_plain_urls=settings.SCAN_PLAIN_URLS,
        deadline_seconds=settings.DEADLINE_SECONDS,
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
    )
    checker = DeadLinkChecker(
        HttpProber(client, timeout=settings.REQUEST_TIMEOUT),
        ArchiveEnricher(WaybackSnapshotIndex(client), fallback_suggestions=settings.FALLBACK_SUGGESTIONS),
        link_config,
        RetryPolicy(max_retries=settings.MAX_RETRIES, backoff_base_seconds=settings.BACKOFF_BASE_SECONDS),
        cache=ResultCache(settings.CACHE_TTL_SECONDS) if settings.CACHE_TTL_SECONDS else None,
    )
    # The limiter only spans this process. A single CLI run never exhausts it;
    # long-lived embedders that reuse one service get the per-caller budget.
    rate_limiter = FixedWindowRateLimiter(
        RateLimitConfig(
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        )
    )
    return IntegrityService(
        posts,
        resolver,
        checker,
        rate_limiter=rate_limiter,
        default_limits=BatchLimits(
            max_posts=settings.MAX_POSTS,
            max_links_per_post=_optional_int(settings.MAX_LINKS_PER_POST),
            max_links=_optional_int(settings.MAX_LINKS),
        ),
    )


def _build_notifier(client: httpx.AsyncClient) -> Optional[ReportNotifierPort]:
    # Select the notification adapter based on configuration to keep the core
    # checker independent from delivery details.
    method = settings.NOTIFICATION_METHOD
    if method == "none":
        return None
    if method == "telegram_bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notifications.method=telegram_bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(client, bot_token, str(settings.BOT_CHAT_ID), settings.NOTIFICATION_MAX_ITEMS)
    if method == "webhook":
        webhook_url = os.getenv("DEADLINK_WEBHOOK_URL")
        if not webhook_url:
            raise RuntimeError("DEADLINK_WEBHOOK_URL is required when notifications.method=webhook")
        return WebhookNotifier(client, webhook_url)
    raise RuntimeError("notifications.method must be 'none', 'webhook' or 'telegram_bot'")


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def _resolve(service: IntegrityService, target: list[str]) -> int:
    if len(target) == 1:
        resolution = await service.resolve_legacy_path(target[0])
    elif len(target) == 4:
        resolution = await service.resolve_legacy_url(*target)
    else:
        raise IntegrityError("resolve expects a legacy path or YEAR MONTH DAY SLUG")

    if resolution is None:
        _emit({"found": False})
        return 1
    _emit({"found": True, **to_jsonable(asdict(resolution))})
    return 0


async def _check_post(service: IntegrityService, post_id: int) -> int:
    dead_links = await service.check_single_post(post_id)
    if dead_links is None:
        _emit({"error": "Post not found", "postId": post_id})
        return 1
    _emit(
        {
            "postId": post_id,
            "deadLinks": [link_result_payload(link) for link in dead_links],
            "hasDeadLinks": bool(dead_links),
        }
    )
    return 0


async def _check_batch(service: IntegrityService, args: argparse.Namespace) -> int:
    report = await service.check_post_batch(
        args.posts,
        args.links_per_post,
        caller=args.caller,
        max_links=args.max_links,
        deadline_seconds=args.deadline,
    )
    _emit(report_payload(report))
    return 0


async def _scheduled(service: IntegrityService, client: httpx.AsyncClient) -> int:
    schedule = ScheduleConfig(
        enabled=bool(settings.SCHEDULE.get("enabled", False)),
        frequency=settings.SCHEDULE.get("frequency", "weekly"),
        time=settings.SCHEDULE.get("time", "09:00"),
        posts_to_check=int(settings.SCHEDULE.get("posts_to_check", 10)),
        next_run=settings.SCHEDULE.get("next_run"),
    )
    now = datetime.now().astimezone()
    if not schedule.enabled:
        _emit({"message": "Scheduled checks are disabled"})
        return 0
    if not should_run_now(schedule, now):
        _emit({"message": "Not scheduled to run at this time", "nextRun": schedule.next_run})
        return 0

    LOGGER.info("Starting scheduled dead link check")
    notifier = _build_notifier(client)
    report = await service.check_post_batch(schedule.posts_to_check, caller="scheduled")
    if report.dead_links and notifier is not None:
        await notifier.send(report)

    next_run = compute_next_run(schedule, now)
    # next_run is not persisted; cron owns the cadence and config records it.
    LOGGER.info("Next scheduled run: %s", next_run.isoformat())
    _emit({"report": report_payload(report), "nextRun": next_run.isoformat()})
    return 0


async def _run_command(args: argparse.Namespace) -> int:
    async with build_client(
        user_agent=settings.USER_AGENT,
        max_connections=settings.CONCURRENCY * 2,
        timeout=settings.REQUEST_TIMEOUT,
    ) as client:
        service = _build_service(client)
        if args.command == "resolve":
            return await _resolve(service, args.target)
        if args.command == "check-post":
            return await _check_post(service, args.post_id)
        if args.command == "check-batch":
            return await _check_batch(service, args)
        return await _scheduled(service, client)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="integrity")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve a legacy /YYYY/MM/DD/slug/ permalink")
    resolve.add_argument("target", nargs="+", help="Legacy path, or YEAR MONTH DAY SLUG")

    check_post = subparsers.add_parser("check-post", help="Check the outbound links of one post")
    check_post.add_argument("post_id", type=int)

    check_batch = subparsers.add_parser("check-batch", help="Check links in the most recent posts")
    check_batch.add_argument("--posts", type=int, default=None, help="Maximum posts to check")
    check_batch.add_argument("--links-per-post", type=int, default=None, help="Maximum links per post")
    check_batch.add_argument("--max-links", type=int, default=None, help="Maximum links in total")
    check_batch.add_argument("--deadline", type=float, default=None, help="Overall deadline in seconds")
    check_batch.add_argument("--caller", default="cli", help="Rate limit key")

    subparsers.add_parser("scheduled", help="Run the scheduled batch check when it is due")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _print_banner()
    _configure_logging()

    try:
        return asyncio.run(_run_command(args))
    except IntegrityError as exc:
        LOGGER.error("%s", exc)
        _emit({"error": str(exc), "type": type(exc).__name__})
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
