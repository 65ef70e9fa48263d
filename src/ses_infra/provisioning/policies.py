"""SQS access policy documents for the email event queues.

Policies are returned as dictionaries; callers serialize them with
``json.dumps`` when attaching them as the queue ``Policy`` attribute.
"""

from typing import Any, Dict

from .naming import account_root_arn


POLICY_VERSION = "2012-10-17"

ACCOUNT_QUEUE_ACTIONS = [
    "SQS:ReceiveMessage",
    "SQS:DeleteMessage",
    "SQS:GetQueueAttributes",
    "SQS:SendMessage",
]


def build_dlq_policy(dlq_arn: str, account_id: str) -> Dict[str, Any]:
    """Build the owner-only access policy for the dead-letter queue.

    Args:
        dlq_arn: ARN of the dead-letter queue
        account_id: Owning AWS account ID

    Returns:
        Policy document dictionary
    """
    return {
        "Version": POLICY_VERSION,
        "Id": "__default_policy_ID",
        "Statement": [
            {
                "Sid": "__owner_statement",
                "Effect": "Allow",
                "Principal": {"AWS": account_root_arn(account_id)},
                "Action": "SQS:*",
                "Resource": dlq_arn,
            }
        ],
    }


def build_main_queue_policy(queue_arn: str, topic_arn: str, account_id: str,
                            policy_id: str = "email-queue-policy") -> Dict[str, Any]:
    """Build the main queue policy.

    The first statement lets the named SNS topic, and only that topic,
    publish to the queue. The second grants the owning account the rights
    needed to consume the queue.

    Args:
        queue_arn: ARN of the main queue
        topic_arn: ARN of the SNS topic allowed to publish
        account_id: Owning AWS account ID
        policy_id: Policy document ``Id``

    Returns:
        Policy document dictionary
    """
    return {
        "Version": POLICY_VERSION,
        "Id": policy_id,
        "Statement": [
            {
                "Sid": "AllowSNSPublish",
                "Effect": "Allow",
                "Principal": {"Service": "sns.amazonaws.com"},
                "Action": "SQS:SendMessage",
                "Resource": queue_arn,
                "Condition": {
                    "ArnEquals": {"aws:SourceArn": topic_arn}
                },
            },
            {
                "Sid": "AllowAccountAccess",
                "Effect": "Allow",
                "Principal": {"AWS": account_root_arn(account_id)},
                "Action": list(ACCOUNT_QUEUE_ACTIONS),
                "Resource": queue_arn,
            },
        ],
    }
