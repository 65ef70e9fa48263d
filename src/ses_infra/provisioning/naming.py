"""Deterministic resource naming for email event infrastructure.

Every AWS resource name is derived from the sanitized project name plus a
fixed suffix, and every ARN is templated locally from values the caller
already knows. Nothing here performs a network call.
"""

import re


DLQ_SUFFIX = "-email-dlq"
QUEUE_SUFFIX = "-email-queue"
TOPIC_SUFFIX = "-email-events"
CONFIGURATION_SET_SUFFIX = "-emailing"

_INVALID_CHARACTERS = re.compile(r"[^a-z0-9-]")


def sanitize_project_name(name: str) -> str:
    """Normalize a project name for use in AWS resource names.

    Lowercases, replaces every character outside ``[a-z0-9-]`` with ``-``
    and strips leading and trailing dashes.

    Args:
        name: Raw project name

    Returns:
        Sanitized slug; sanitizing it again returns it unchanged
    """
    return _INVALID_CHARACTERS.sub("-", name.lower()).strip("-")


def dlq_name(project: str) -> str:
    return f"{project}{DLQ_SUFFIX}"


def queue_name(project: str) -> str:
    return f"{project}{QUEUE_SUFFIX}"


def topic_name(project: str) -> str:
    return f"{project}{TOPIC_SUFFIX}"


def configuration_set_name(project: str) -> str:
    return f"{project}{CONFIGURATION_SET_SUFFIX}"


def build_arn(service: str, region: str, account_id: str, resource_name: str) -> str:
    """Build an ARN for a regional resource.

    Args:
        service: AWS service prefix (e.g., 'sqs')
        region: AWS region
        account_id: AWS account ID
        resource_name: Resource name as created

    Returns:
        ARN string ``arn:aws:<service>:<region>:<account_id>:<resource_name>``
    """
    return f"arn:aws:{service}:{region}:{account_id}:{resource_name}"


def account_root_arn(account_id: str) -> str:
    return f"arn:aws:iam::{account_id}:root"
