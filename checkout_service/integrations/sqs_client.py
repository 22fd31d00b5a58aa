"""
SQS queue client.

Thin async facade over the boto3 SQS client: receive a batch, delete by
receipt handle, send a message. Blocking boto3 calls run in the default
executor.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import boto3
import structlog
from botocore.config import Config

from checkout_service.config import Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QueueMessage:
    """A message received from a queue."""

    id: str
    body: str
    receipt_handle: str


def _is_fifo(queue_url: str) -> bool:
    return queue_url.endswith(".fifo")


class SqsClient:
    """Async wrapper around a boto3 SQS client."""

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        """
        Initialize SQS client.

        Args:
            settings: Application settings (region, endpoint, batch sizes)
            client: Optional pre-built boto3 SQS client
        """
        self.settings = settings or get_settings()
        self._client = client or boto3.client(
            "sqs",
            region_name=self.settings.aws_region,
            endpoint_url=self.settings.sqs_endpoint_url,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )

    async def _run(self, func: Callable[[], Any]) -> Any:
        return await asyncio.get_event_loop().run_in_executor(None, func)

    async def receive_messages(
        self, queue_url: str, max_messages: Optional[int] = None
    ) -> List[QueueMessage]:
        """
        Pull a batch of available messages.

        Args:
            queue_url: Queue to poll
            max_messages: Batch size (defaults to settings)

        Returns:
            List[QueueMessage]: Zero or more messages in queue order
        """
        response: Dict[str, Any] = await self._run(
            lambda: self._client.receive_message(
                QueueUrl=queue_url,
                MaxNumberOfMessages=max_messages or self.settings.sqs_max_messages,
                WaitTimeSeconds=self.settings.sqs_wait_time_seconds,
            )
        )
        return [
            QueueMessage(
                id=message["MessageId"],
                body=message.get("Body", ""),
                receipt_handle=message["ReceiptHandle"],
            )
            for message in response.get("Messages", [])
        ]

    async def delete_message(self, queue_url: str, receipt_handle: str) -> None:
        """Acknowledge a message by its receipt handle."""
        await self._run(
            lambda: self._client.delete_message(
                QueueUrl=queue_url,
                ReceiptHandle=receipt_handle,
            )
        )

    async def send_message(
        self, queue_url: str, body: str, message_key: Optional[str] = None
    ) -> str:
        """
        Send a message.

        For FIFO queues ``message_key`` is used as both the message group id
        and the deduplication id.

        Returns:
            str: Message id assigned by the queue
        """
        params: Dict[str, Any] = {"QueueUrl": queue_url, "MessageBody": body}
        if message_key and _is_fifo(queue_url):
            params["MessageGroupId"] = message_key
            params["MessageDeduplicationId"] = message_key

        response: Dict[str, Any] = await self._run(
            lambda: self._client.send_message(**params)
        )
        return response["MessageId"]

    async def get_queue_attributes(self, queue_url: str) -> Dict[str, str]:
        """Fetch queue depth attributes (used by health checks)."""
        response: Dict[str, Any] = await self._run(
            lambda: self._client.get_queue_attributes(
                QueueUrl=queue_url,
                AttributeNames=["ApproximateNumberOfMessages"],
            )
        )
        return response.get("Attributes", {})
