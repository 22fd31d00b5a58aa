"""
Tests for the SQS client using botocore's Stubber.
"""
from typing import Any, Generator, Tuple

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from checkout_service.config import Settings
from checkout_service.integrations.sqs_client import QueueMessage, SqsClient

STANDARD_QUEUE = "https://sqs.us-east-1.amazonaws.com/000000000000/order-created"
FIFO_QUEUE = "https://sqs.us-east-1.amazonaws.com/000000000000/payment-completed.fifo"


@pytest.fixture
def stubbed_client(test_settings: Settings) -> Generator[Tuple[SqsClient, Stubber], Any, None]:
    client = boto3.client("sqs", region_name="us-east-1")
    with Stubber(client) as stubber:
        yield SqsClient(settings=test_settings, client=client), stubber
        stubber.assert_no_pending_responses()


class TestSqsClient:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_receive_messages(self, stubbed_client: Tuple[SqsClient, Stubber]) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "receive_message",
            {
                "Messages": [
                    {"MessageId": "m-1", "ReceiptHandle": "rh-1", "Body": '{"orderId": "1"}'},
                    {"MessageId": "m-2", "ReceiptHandle": "rh-2", "Body": '{"orderId": "2"}'},
                ]
            },
            {"QueueUrl": STANDARD_QUEUE, "MaxNumberOfMessages": 10, "WaitTimeSeconds": 0},
        )

        messages = await sqs.receive_messages(STANDARD_QUEUE)

        assert messages == [
            QueueMessage(id="m-1", body='{"orderId": "1"}', receipt_handle="rh-1"),
            QueueMessage(id="m-2", body='{"orderId": "2"}', receipt_handle="rh-2"),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_receive_empty_queue(self, stubbed_client: Tuple[SqsClient, Stubber]) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "receive_message",
            {},
            {"QueueUrl": STANDARD_QUEUE, "MaxNumberOfMessages": 5, "WaitTimeSeconds": 0},
        )

        assert await sqs.receive_messages(STANDARD_QUEUE, max_messages=5) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_message(self, stubbed_client: Tuple[SqsClient, Stubber]) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "delete_message", {}, {"QueueUrl": STANDARD_QUEUE, "ReceiptHandle": "rh-1"}
        )

        await sqs.delete_message(STANDARD_QUEUE, "rh-1")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_to_fifo_queue_sets_group_and_dedup_ids(
        self, stubbed_client: Tuple[SqsClient, Stubber]
    ) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "send_message",
            {"MessageId": "m-10"},
            {
                "QueueUrl": FIFO_QUEUE,
                "MessageBody": '{"orderId":"123","checkoutStatus":"Paid"}',
                "MessageGroupId": "checkout-123",
                "MessageDeduplicationId": "checkout-123",
            },
        )

        message_id = await sqs.send_message(
            FIFO_QUEUE,
            '{"orderId":"123","checkoutStatus":"Paid"}',
            message_key="checkout-123",
        )

        assert message_id == "m-10"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_to_standard_queue_omits_fifo_attributes(
        self, stubbed_client: Tuple[SqsClient, Stubber]
    ) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "send_message",
            {"MessageId": "m-11"},
            {"QueueUrl": STANDARD_QUEUE, "MessageBody": "{}"},
        )

        assert await sqs.send_message(STANDARD_QUEUE, "{}", message_key="checkout-1") == "m-11"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_client_errors_propagate(
        self, stubbed_client: Tuple[SqsClient, Stubber]
    ) -> None:
        sqs, stubber = stubbed_client
        stubber.add_client_error(
            "receive_message",
            service_error_code="AWS.SimpleQueueService.NonExistentQueue",
            http_status_code=400,
        )

        with pytest.raises(ClientError, match="NonExistentQueue"):
            await sqs.receive_messages(STANDARD_QUEUE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_queue_attributes(self, stubbed_client: Tuple[SqsClient, Stubber]) -> None:
        sqs, stubber = stubbed_client
        stubber.add_response(
            "get_queue_attributes",
            {"Attributes": {"ApproximateNumberOfMessages": "3"}},
            {"QueueUrl": STANDARD_QUEUE, "AttributeNames": ["ApproximateNumberOfMessages"]},
        )

        assert await sqs.get_queue_attributes(STANDARD_QUEUE) == {
            "ApproximateNumberOfMessages": "3"
        }
