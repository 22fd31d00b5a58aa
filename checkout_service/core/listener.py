"""
Periodic queue listener.

Drains a queue in fixed-interval cycles and acknowledges each message only
after its handler completed successfully. Failed messages stay on the queue
and are redelivered once their visibility timeout expires.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import structlog

from checkout_service.domain.exceptions import MessageDecodeError
from checkout_service.integrations.sqs_client import QueueMessage, SqsClient
from checkout_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[str], Awaitable[Any]]


class QueueListener:
    """
    Background worker polling one queue.

    Cycles never overlap: the next one is scheduled only after the previous
    one finished.
    """

    def __init__(
        self,
        queue_url: str,
        sqs_client: SqsClient,
        message_handler: MessageHandler,
        poll_interval_seconds: float = 5.0,
        max_messages: Optional[int] = None,
        name: str = "order_created",
    ):
        """
        Initialize queue listener.

        Args:
            queue_url: Queue to drain
            sqs_client: Queue client
            message_handler: Coroutine called with each message body
            poll_interval_seconds: Pause between cycles
            max_messages: Batch size per receive call
            name: Queue label for logs and metrics
        """
        self.queue_url = queue_url
        self.sqs_client = sqs_client
        self.message_handler = message_handler
        self.poll_interval_seconds = poll_interval_seconds
        self.max_messages = max_messages
        self.name = name
        self._running = False
        self._stopping = False
        self._wakeup = asyncio.Event()

        logger.info(
            "queue_listener_initialized",
            queue=name,
            queue_url=queue_url,
            poll_interval=poll_interval_seconds,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def _process_message(self, message: QueueMessage) -> bool:
        """
        Handle and acknowledge a single message.

        Returns:
            bool: True if the message was handled and deleted
        """
        with structlog.contextvars.bound_contextvars(queue=self.name, message_id=message.id):
            try:
                await self.message_handler(message.body)
            except MessageDecodeError as e:
                metrics.record_queue_message(self.name, "failed")
                logger.error("queue_message_malformed", error=str(e), body=message.body)
                return False
            except Exception as e:
                metrics.record_queue_message(self.name, "failed")
                logger.error(
                    "queue_message_processing_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False

            try:
                await self.sqs_client.delete_message(self.queue_url, message.receipt_handle)
            except Exception as e:
                metrics.record_queue_message(self.name, "delete_failed")
                logger.error("queue_message_delete_failed", error=str(e))
                return False

            metrics.record_queue_message(self.name, "acknowledged")
            logger.info("queue_message_acknowledged")
            return True

    async def poll_once(self) -> int:
        """
        Run a single receive/handle/acknowledge cycle.

        Returns:
            int: Number of messages acknowledged
        """
        start_time = time.time()
        try:
            try:
                messages = await self.sqs_client.receive_messages(
                    self.queue_url, max_messages=self.max_messages
                )
            except Exception as e:
                metrics.record_receive_error(self.name)
                logger.error("queue_receive_failed", queue=self.name, error=str(e))
                return 0

            if not messages:
                return 0

            logger.info("queue_batch_received", queue=self.name, batch_size=len(messages))

            acknowledged = 0
            for message in messages:
                if await self._process_message(message):
                    acknowledged += 1

            logger.info(
                "queue_batch_processed",
                queue=self.name,
                total=len(messages),
                acknowledged=acknowledged,
                failed=len(messages) - acknowledged,
            )
            return acknowledged
        finally:
            metrics.record_poll_duration(self.name, time.time() - start_time)

    async def start(self) -> None:
        """
        Run polling cycles until stop() is called.

        Returns immediately if stop() was requested before the loop started.
        """
        if self._stopping:
            logger.info("queue_listener_stopped_before_start", queue=self.name)
            return

        self._running = True
        logger.info("queue_listener_started", queue=self.name)

        try:
            while not self._stopping:
                try:
                    await self.poll_once()
                except Exception as e:
                    logger.error("queue_listener_error", queue=self.name, error=str(e))

                if self._stopping:
                    break
                try:
                    await asyncio.wait_for(
                        self._wakeup.wait(), timeout=self.poll_interval_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("queue_listener_stopped", queue=self.name)

    def stop(self) -> None:
        """Stop after the in-flight cycle completes."""
        self._stopping = True
        self._wakeup.set()
        logger.info("queue_listener_stop_requested", queue=self.name)
