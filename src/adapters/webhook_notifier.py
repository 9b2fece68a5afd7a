"""JSON webhook report notifier."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from adapters.report_formatting import link_result_payload, summary_line
from core.models import AggregateReport

LOGGER = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts a JSON summary of the report to an operator webhook."""

    def __init__(self, client: httpx.AsyncClient, webhook_url: str, source: str = "scheduled") -> None:
        self._client = client
        self._webhook_url = webhook_url
        self._source = source

    def build_payload(self, report: AggregateReport) -> dict:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": self._source,
            "summary": summary_line(report),
            "totalDeadLinks": len(report.dead_links),
            "postsAffected": len({link.post_id for link in report.dead_links}),
            "postsChecked": report.posts_checked,
            "details": [link_result_payload(link) for link in report.dead_links],
        }

    async def send(self, report: AggregateReport) -> None:
        try:
            response = await self._client.post(self._webhook_url, json=self.build_payload(report), timeout=10)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Webhook notification failed: %s", exc)
            return
        LOGGER.info("Webhook notification sent for %s dead links", len(report.dead_links))
