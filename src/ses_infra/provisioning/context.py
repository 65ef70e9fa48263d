"""Immutable inputs and resource handles for one provisioning run."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .naming import sanitize_project_name


DEFAULT_REGION = "eu-north-1"

# Main queue: long visibility so event handlers can finish database work
# before the message is redelivered; 14 days retention.
DEFAULT_VISIBILITY_TIMEOUT = 600
DEFAULT_RETENTION = 1_209_600
DEFAULT_MAX_RECEIVE_COUNT = 3
DEFAULT_POLLING_INTERVAL_MS = 5000

# Dead-letter queue knobs are fixed.
DLQ_VISIBILITY_TIMEOUT = 60
DLQ_RETENTION = 1_209_600

RECEIVE_WAIT_TIME_SECONDS = 20

EXISTING_SUBSCRIPTION = "existing"


@dataclass(frozen=True)
class ProvisioningContext:
    """Inputs of a single provisioning run."""

    project_name: str
    region: str
    access_key_id: str
    secret_access_key: str
    queue_visibility_timeout: int = DEFAULT_VISIBILITY_TIMEOUT
    queue_retention: int = DEFAULT_RETENTION
    max_receive_count: int = DEFAULT_MAX_RECEIVE_COUNT
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    dlq_visibility_timeout: int = DLQ_VISIBILITY_TIMEOUT
    dlq_retention: int = DLQ_RETENTION

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "ProvisioningContext":
        """Build a context from a caller-supplied option map.

        Text fields are converted to strings and trimmed, the project name
        is sanitized and missing knobs take their defaults. DLQ knobs in
        ``options`` are ignored.

        Args:
            options: Pipeline option dictionary

        Returns:
            ProvisioningContext for the run
        """
        return cls(
            project_name=sanitize_project_name(_text(options.get("project_name"))),
            region=_text(options.get("region")) or DEFAULT_REGION,
            access_key_id=_text(options.get("access_key_id")),
            secret_access_key=_text(options.get("secret_access_key")),
            queue_visibility_timeout=int(
                options.get("queue_visibility_timeout", DEFAULT_VISIBILITY_TIMEOUT)
            ),
            queue_retention=int(options.get("queue_retention", DEFAULT_RETENTION)),
            max_receive_count=int(
                options.get("max_receive_count", DEFAULT_MAX_RECEIVE_COUNT)
            ),
            polling_interval_ms=int(
                options.get("polling_interval_ms", DEFAULT_POLLING_INTERVAL_MS)
            ),
        )

    def missing_fields(self) -> Optional[str]:
        """Describe required inputs that are absent.

        Returns:
            Error message, or None when the context is complete
        """
        if not self.project_name:
            return "Project name is required and must contain at least one letter or digit."
        if not self.access_key_id or not self.secret_access_key:
            return "AWS credentials not found. Please configure them first."
        return None



def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class QueueHandle:
    url: str
    arn: str


@dataclass(frozen=True)
class TopicHandle:
    arn: str


@dataclass(frozen=True)
class SubscriptionHandle:
    arn: str

    @property
    def is_existing(self) -> bool:
        return self.arn == EXISTING_SUBSCRIPTION


@dataclass(frozen=True)
class ConfigurationSetHandle:
    name: str
