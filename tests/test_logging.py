"""
Tests for logging processors and per-message log context.
"""
import logging
from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest
import structlog

from checkout_service import __version__
from checkout_service.config import Settings
from checkout_service.core.listener import QueueListener
from checkout_service.integrations.sqs_client import QueueMessage, SqsClient
from checkout_service.monitoring.logging import (
    MAX_LOGGED_BODY_LENGTH,
    add_service_context,
    setup_logging,
    truncate_message_body,
)


class TestProcessors:

    @pytest.mark.unit
    def test_service_context_is_added(self, test_settings: Settings) -> None:
        event = add_service_context(None, "info", {"event": "checkout_created"})

        assert event["service"] == test_settings.app_name
        assert event["env"] == test_settings.app_env
        assert event["version"] == __version__

    @pytest.mark.unit
    def test_long_bodies_are_truncated(self) -> None:
        body = "x" * (MAX_LOGGED_BODY_LENGTH + 100)

        event = truncate_message_body(None, "error", {"event": "bad", "body": body})

        assert event["body"].startswith("x" * MAX_LOGGED_BODY_LENGTH)
        assert event["body"].endswith(f"[{len(body)} chars]")

    @pytest.mark.unit
    def test_short_bodies_are_kept(self) -> None:
        event = truncate_message_body(None, "error", {"event": "bad", "body": "{broken"})

        assert event["body"] == "{broken"


class TestSetupLogging:

    @pytest.mark.unit
    def test_noisy_loggers_are_quieted(self) -> None:
        setup_logging()

        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING


class TestMessageLogContext:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_queue_and_message_id_are_bound_while_handling(self) -> None:
        seen: Dict[str, Any] = {}

        async def handler(body: str) -> None:
            seen.update(structlog.contextvars.get_contextvars())

        sqs_client = AsyncMock(spec=SqsClient)
        sqs_client.receive_messages.return_value = [
            QueueMessage(id="m-1", body="{}", receipt_handle="rh-1")
        ]
        listener = QueueListener(
            queue_url="https://sqs.us-east-1.amazonaws.com/000000000000/order-created",
            sqs_client=sqs_client,
            message_handler=handler,
        )

        await listener.poll_once()

        assert seen["queue"] == "order_created"
        assert seen["message_id"] == "m-1"
        assert "message_id" not in structlog.contextvars.get_contextvars()
