"""
GRACEFULSHUTDOWN - Cloud Lifecycle API

Thin wrapper around the autoscaling, EC2 and SQS calls used by the
lifecycle hook manager, plus EC2 instance metadata lookup.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from requests import RequestException

from gracefulshutdown.config.settings import LifecycleHookConfig
from gracefulshutdown.core.errors import HostLookupError, MetadataError
from gracefulshutdown.infrastructure.http import HttpClient, RequestsHttpClient

logger = logging.getLogger(__name__)

METADATA_URL = "http://169.254.169.254/latest/meta-data/"
METADATA_TIMEOUT = 5.0


@dataclass
class QueueMessage:
    """A message received from the notification queue."""

    body: str
    receipt_handle: str
    message_id: str = ""


class LifecycleApi(Protocol):
    """Protocol for the cloud calls made by the lifecycle hook manager."""

    def init(self, config: LifecycleHookConfig) -> None:
        """Create clients for the configured region and resolve the queue."""
        ...

    def get_metadata(self, key: str) -> str:
        ...

    def receive_message(self) -> Optional[QueueMessage]:
        """Long-poll the queue for a single message."""
        ...

    def delete_message(self, message: QueueMessage) -> None:
        ...

    def get_host(self, instance_id: str) -> str:
        """Resolve an instance id to its private IP address."""
        ...

    def send_heartbeat(self, auto_scaling_group_name: str, lifecycle_action_token: str) -> None:
        ...

    def complete_lifecycle_action(
        self, auto_scaling_group_name: str, lifecycle_action_token: str
    ) -> None:
        ...


class Boto3LifecycleApi:
    """LifecycleApi backed by boto3 clients."""

    def __init__(self, http_client: Optional[HttpClient] = None, session=None):
        """
        Initialize the API wrapper.

        Args:
            http_client: HTTP client for metadata requests
            session: Optional boto3 session (default session if None)
        """
        self._http = http_client or RequestsHttpClient()
        self._session = session
        self._config: Optional[LifecycleHookConfig] = None
        self._queue_url: Optional[str] = None
        self.autoscaling = None
        self.ec2 = None
        self.sqs = None

    def init(self, config: LifecycleHookConfig) -> None:
        session = self._session or boto3.session.Session()
        self.autoscaling = session.client("autoscaling", region_name=config.region)
        self.ec2 = session.client("ec2", region_name=config.region)
        self.sqs = session.client("sqs", region_name=config.region)
        self._config = config

        if config.queue_name:
            response = self.sqs.get_queue_url(QueueName=config.queue_name)
            self._queue_url = response["QueueUrl"]
            logger.info(f"Listening on queue {config.queue_name} ({self._queue_url})")

    def get_metadata(self, key: str) -> str:
        """
        Read a value from the EC2 instance metadata service.

        Raises:
            MetadataError: If the metadata service is unreachable or refuses
        """
        url = METADATA_URL + key
        try:
            response = self._http.get(url, timeout=METADATA_TIMEOUT)
            response.raise_for_status()
        except RequestException as e:
            raise MetadataError(f"Failed to read instance metadata '{key}': {e}") from e
        return response.text.strip()

    def receive_message(self) -> Optional[QueueMessage]:
        response = self.sqs.receive_message(
            QueueUrl=self._queue_url,
            MaxNumberOfMessages=1,
            WaitTimeSeconds=self._config.wait_time_seconds,
        )
        messages = response.get("Messages", [])
        if not messages:
            return None

        message = messages[0]
        return QueueMessage(
            body=message.get("Body", ""),
            receipt_handle=message["ReceiptHandle"],
            message_id=message.get("MessageId", ""),
        )

    def delete_message(self, message: QueueMessage) -> None:
        self.sqs.delete_message(QueueUrl=self._queue_url, ReceiptHandle=message.receipt_handle)

    def get_host(self, instance_id: str) -> str:
        """
        Resolve an instance id to its private IP address.

        Raises:
            HostLookupError: If the instance cannot be described or has no private IP
        """
        try:
            response = self.ec2.describe_instances(InstanceIds=[instance_id])
        except (BotoCoreError, ClientError) as e:
            raise HostLookupError(f"Failed to describe instance {instance_id}: {e}") from e

        reservations = response.get("Reservations", [])
        if len(reservations) != 1:
            raise HostLookupError(f"Wrong number of reservations: {len(reservations)}")

        instances = reservations[0].get("Instances", [])
        if len(instances) != 1:
            raise HostLookupError(f"Wrong number of instances: {len(instances)}")

        address = instances[0].get("PrivateIpAddress")
        if not address:
            raise HostLookupError(f"Instance {instance_id} has no private IP address")
        return address

    def send_heartbeat(self, auto_scaling_group_name: str, lifecycle_action_token: str) -> None:
        self.autoscaling.record_lifecycle_action_heartbeat(
            AutoScalingGroupName=auto_scaling_group_name,
            LifecycleActionToken=lifecycle_action_token,
            LifecycleHookName=self._config.lifecycle_hook_name,
        )

    def complete_lifecycle_action(
        self, auto_scaling_group_name: str, lifecycle_action_token: str
    ) -> None:
        self.autoscaling.complete_lifecycle_action(
            AutoScalingGroupName=auto_scaling_group_name,
            LifecycleActionResult="CONTINUE",
            LifecycleActionToken=lifecycle_action_token,
            LifecycleHookName=self._config.lifecycle_hook_name,
        )
