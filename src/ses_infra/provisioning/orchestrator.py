"""Email event infrastructure provisioning orchestration.

This module provides the PipelineOrchestrator class that creates and wires
together the AWS resources needed to track outbound email events:

1. Resolve the AWS account id
2. Create the dead-letter queue
3. Attach the owner-only DLQ policy
4. Create the SNS topic
5. Create the main queue with a redrive policy pointing at the DLQ
6. Attach the main queue policy (SNS publish + account access)
7. Subscribe the main queue to the topic
8. Create the SES configuration set
9. Attach the SES event destination publishing to the topic

Steps run in order and the first failing step stops the run. Resources
created by earlier steps are left in place; re-running converges on the
same resources because every create step accepts "already exists".
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.aws_client import AWSClientManager, DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
from ..core.results import Err, Ok, call_and_normalize, error_from_exception
from ..credentials.identity import extract_account_id
from . import naming
from .context import (
    EXISTING_SUBSCRIPTION,
    RECEIVE_WAIT_TIME_SECONDS,
    ConfigurationSetHandle,
    ProvisioningContext,
    QueueHandle,
    SubscriptionHandle,
    TopicHandle,
)
from .policies import build_dlq_policy, build_main_queue_policy
from .sesv2 import SESv2Client, TRACKED_EVENT_TYPES


logger = logging.getLogger(__name__)


EVENT_DESTINATION_NAME = "email-events-to-sns"

QUEUE_EXISTS_CODES = {"QueueAlreadyExists", "QueueNameExists"}

TOTAL_STEPS = 9


class PipelineOrchestrator:
    """Sequences creation of the email event infrastructure.

    Each step receives the handles produced so far and returns ``Ok`` with
    the handles it adds, or ``Err(step_name, reason)``.
    """

    def __init__(self, context: ProvisioningContext,
                 aws_client: Optional[AWSClientManager] = None,
                 ses_client: Optional[SESv2Client] = None,
                 connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
                 timeout_seconds: int = DEFAULT_READ_TIMEOUT) -> None:
        """Initialize the orchestrator.

        Args:
            context: Inputs of this run
            aws_client: AWS client manager, built from the context if omitted
            ses_client: Signed SES v2 client, built from the manager if omitted
            connect_timeout: Connection timeout for clients built here
            timeout_seconds: Read timeout for clients built here
        """
        self.context = context
        self.aws_client = aws_client or AWSClientManager(
            context.access_key_id,
            context.secret_access_key,
            context.region,
            connect_timeout=connect_timeout,
            read_timeout=timeout_seconds,
        )
        self.ses_client = ses_client or SESv2Client(self.aws_client, timeout_seconds=timeout_seconds)

    @property
    def steps(self) -> List[Tuple[str, Callable[[Dict[str, Any]], Any]]]:
        """Ordered (step name, step function) pairs."""
        return [
            ("get_account_id", self.resolve_account_id),
            ("create_dlq", self.create_dead_letter_queue),
            ("set_dlq_policy", self.apply_dlq_access_policy),
            ("create_sns_topic", self.create_topic),
            ("create_main_queue", self.create_main_queue),
            ("set_main_queue_policy", self.apply_main_queue_policy),
            ("subscribe_sqs_to_sns", self.subscribe_queue_to_topic),
            ("create_ses_config_set", self.create_email_configuration_set),
            ("configure_ses_events", self.attach_event_destination),
        ]

    def run(self):
        """Run every step in order.

        Returns:
            Ok(result map) when all steps succeed, otherwise
            Err(kind=failing step name, message=reason)
        """
        problem = self.context.missing_fields()
        if problem:
            return self._fail("validation", problem)

        logger.info(f"Starting infrastructure setup for project: {self.context.project_name}")

        outputs: Dict[str, Any] = {}
        for index, (step_name, step) in enumerate(self.steps, start=1):
            logger.info(f"[{index}/{TOTAL_STEPS}] {step_name}")
            try:
                result = step(outputs)
            except Exception as e:
                error = error_from_exception(e)
                result = self._fail(step_name, f"{error.kind}: {error.message}")
            if not result.is_ok:
                logger.error(f"Failed at step: {result.kind}. Reason: {result.message}")
                return result
            outputs.update(result.value)

        logger.info("Infrastructure setup completed successfully")
        return Ok(self._result_map(outputs))

    def _result_map(self, outputs: Dict[str, Any]) -> Dict[str, str]:
        return {
            "aws_region": self.context.region,
            "aws_sns_topic_arn": outputs["topic"].arn,
            "aws_sqs_queue_url": outputs["queue"].url,
            "aws_sqs_queue_arn": outputs["queue"].arn,
            "aws_sqs_dlq_url": outputs["dlq"].url,
            "aws_ses_configuration_set": outputs["configuration_set"].name,
            "sqs_polling_interval_ms": str(self.context.polling_interval_ms),
        }

    # Step 1
    def resolve_account_id(self, outputs: Dict[str, Any]):
        response = call_and_normalize(self._client("sts").get_caller_identity)
        if not response.is_ok:
            return self._fail(
                "get_account_id",
                f"Failed to get AWS Account ID: {response.kind}: {response.message}",
            )

        account_id = extract_account_id(response.value)
        if not account_id:
            return self._fail(
                "get_account_id",
                f"Could not parse account ID from response: {response.value!r}",
            )

        logger.info(f"  Account ID: {account_id}")
        return Ok({"account_id": account_id})

    # Step 2
    def create_dead_letter_queue(self, outputs: Dict[str, Any]):
        name = naming.dlq_name(self.context.project_name)
        attributes = {
            "VisibilityTimeout": str(self.context.dlq_visibility_timeout),
            "MessageRetentionPeriod": str(self.context.dlq_retention),
            "SqsManagedSseEnabled": "true",
        }
        result = self._create_queue("create_dlq", name, attributes, outputs["account_id"])
        if not result.is_ok:
            return result
        return Ok({"dlq": result.value})

    # Step 3
    def apply_dlq_access_policy(self, outputs: Dict[str, Any]):
        dlq = outputs["dlq"]
        policy = build_dlq_policy(dlq.arn, outputs["account_id"])
        return self._set_queue_policy("set_dlq_policy", dlq, policy)

    # Step 4
    def create_topic(self, outputs: Dict[str, Any]):
        name = naming.topic_name(self.context.project_name)
        response = call_and_normalize(self._client("sns").create_topic, Name=name)
        if not response.is_ok:
            return self._fail("create_sns_topic", f"{response.kind}: {response.message}")

        topic_arn = _first_present(response.value, "TopicArn", "topic_arn")
        if not topic_arn:
            return self._fail(
                "create_sns_topic", f"Could not parse topic ARN from response: {response.value!r}"
            )

        logger.info(f"  SNS topic created/found: {topic_arn}")
        return Ok({"topic": TopicHandle(arn=topic_arn)})

    # Step 5
    def create_main_queue(self, outputs: Dict[str, Any]):
        name = naming.queue_name(self.context.project_name)
        redrive_policy = {
            "deadLetterTargetArn": outputs["dlq"].arn,
            "maxReceiveCount": self.context.max_receive_count,
        }
        attributes = {
            "VisibilityTimeout": str(self.context.queue_visibility_timeout),
            "MessageRetentionPeriod": str(self.context.queue_retention),
            "ReceiveMessageWaitTimeSeconds": str(RECEIVE_WAIT_TIME_SECONDS),
            "RedrivePolicy": json.dumps(redrive_policy),
            "SqsManagedSseEnabled": "true",
        }
        result = self._create_queue("create_main_queue", name, attributes, outputs["account_id"])
        if not result.is_ok:
            return result
        return Ok({"queue": result.value})

    # Step 6
    def apply_main_queue_policy(self, outputs: Dict[str, Any]):
        queue = outputs["queue"]
        policy = build_main_queue_policy(
            queue.arn,
            outputs["topic"].arn,
            outputs["account_id"],
            policy_id=f"{self.context.project_name}-sqs-policy",
        )
        return self._set_queue_policy("set_main_queue_policy", queue, policy)

    # Step 7
    def subscribe_queue_to_topic(self, outputs: Dict[str, Any]):
        # Any failure is treated as an existing subscription; this step
        # never stops the run.
        response = call_and_normalize(
            self._client("sns").subscribe,
            TopicArn=outputs["topic"].arn,
            Protocol="sqs",
            Endpoint=outputs["queue"].arn,
        )
        if not response.is_ok:
            logger.info(
                f"  Subscription may already exist: {response.kind}: {response.message}"
            )
            return Ok({"subscription": SubscriptionHandle(arn=EXISTING_SUBSCRIPTION)})

        subscription_arn = _first_present(response.value, "SubscriptionArn", "subscription_arn")
        logger.info("  SNS -> SQS subscription created")
        if subscription_arn and subscription_arn != "pending confirmation":
            logger.info(f"  Subscription ARN: {subscription_arn}")

        return Ok({
            "subscription": SubscriptionHandle(arn=subscription_arn or EXISTING_SUBSCRIPTION)
        })

    # Step 8
    def create_email_configuration_set(self, outputs: Dict[str, Any]):
        name = naming.configuration_set_name(self.context.project_name)
        result = self.ses_client.create_configuration_set(name)
        if not result.is_ok:
            return self._fail("create_ses_config_set", result.message)

        logger.info(f"  SES configuration set ready: {name}")
        return Ok({"configuration_set": ConfigurationSetHandle(name=name)})

    # Step 9
    def attach_event_destination(self, outputs: Dict[str, Any]):
        topic_arn = outputs["topic"].arn
        result = self.ses_client.create_event_destination(
            outputs["configuration_set"].name, EVENT_DESTINATION_NAME, topic_arn
        )
        if not result.is_ok:
            return self._fail("configure_ses_events", result.message)

        logger.info(f"  SES event tracking configured: {', '.join(TRACKED_EVENT_TYPES)}")
        logger.info(f"  Destination: {topic_arn}")
        return Ok({"event_destination": EVENT_DESTINATION_NAME})

    def _create_queue(self, step_name: str, name: str,
                      attributes: Dict[str, str], account_id: str):
        sqs = self._client("sqs")
        queue_arn = naming.build_arn("sqs", self.context.region, account_id, name)

        response = call_and_normalize(sqs.create_queue, QueueName=name, Attributes=attributes)
        if response.is_ok:
            queue_url = _first_present(response.value, "QueueUrl", "queue_url")
            if not queue_url:
                return self._fail(step_name, f"Could not parse queue URL from response: {response.value!r}")
            logger.info(f"  Queue created: {queue_url}")
            return Ok(QueueHandle(url=queue_url, arn=queue_arn))

        if not _queue_already_exists(response):
            return self._fail(step_name, f"{response.kind}: {response.message}")

        existing = call_and_normalize(sqs.get_queue_url, QueueName=name)
        if not existing.is_ok:
            return self._fail(
                step_name,
                f"Failed to get existing queue {name}: {existing.kind}: {existing.message}",
            )

        queue_url = _first_present(existing.value, "QueueUrl", "queue_url")
        if not queue_url:
            return self._fail(step_name, f"Could not parse queue URL from response: {existing.value!r}")

        logger.info(f"  Queue found (already exists): {queue_url}")
        return Ok(QueueHandle(url=queue_url, arn=queue_arn))

    def _set_queue_policy(self, step_name: str, queue: QueueHandle, policy: Dict[str, Any]):
        response = call_and_normalize(
            self._client("sqs").set_queue_attributes,
            QueueUrl=queue.url,
            Attributes={"Policy": json.dumps(policy)},
        )
        if not response.is_ok:
            return self._fail(step_name, f"{response.kind}: {response.message}")

        logger.info(f"  Policy set on {queue.arn}")
        return Ok({})

    def _client(self, service_name: str):
        return self.aws_client.get_client(service_name)

    @staticmethod
    def _fail(step_name: str, reason: str) -> Err:
        return Err(kind=step_name, message=reason)


def provision(options: Dict[str, Any], **kwargs):
    """Build a context from ``options`` and run the pipeline.

    Args:
        options: Pipeline option dictionary
        **kwargs: Passed to PipelineOrchestrator

    Returns:
        Ok(result map) or Err(step name, reason)
    """
    try:
        context = ProvisioningContext.from_options(options)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid pipeline options: {e}")
        return Err(kind="validation", message=f"Invalid pipeline options: {e}")
    return PipelineOrchestrator(context, **kwargs).run()


def _first_present(body: Any, *keys: str) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    return next((body[key] for key in keys if body.get(key)), None)


def _queue_already_exists(error: Err) -> bool:
    return error.kind in QUEUE_EXISTS_CODES or "already exists" in (error.message or "").lower()
