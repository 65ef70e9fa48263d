"""SES v2 configuration-set client using AWS SigV4 signed requests.

Only two control-plane operations are needed: creating a configuration set
and attaching an event destination to it. Both are sent as signed JSON
requests against the SES v2 REST endpoint, signed for the ``ses`` service
name (signatures computed for ``email`` are rejected).

Both operations treat "already exists" as success.
"""

import json
import logging
import urllib.error
import urllib.request
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest

from ..core.aws_client import AWSClientManager, DEFAULT_READ_TIMEOUT
from ..core.results import Err, Ok


logger = logging.getLogger(__name__)


SIGNING_SERVICE_NAME = "ses"
ALREADY_EXISTS_TYPE = "AlreadyExistsException"

TRACKED_EVENT_TYPES = [
    "SEND",
    "REJECT",
    "BOUNCE",
    "COMPLAINT",
    "DELIVERY",
    "OPEN",
    "CLICK",
    "RENDERING_FAILURE",
]


class SESv2Client:
    """Signed JSON client for SES v2 configuration-set operations."""

    def __init__(self, aws_client: AWSClientManager,
                 timeout_seconds: int = DEFAULT_READ_TIMEOUT,
                 endpoint: Optional[str] = None) -> None:
        """Initialize client.

        Args:
            aws_client: Client manager supplying credentials and region
            timeout_seconds: Socket timeout for each request
            endpoint: Override for the SES v2 endpoint URL
        """
        self.aws_client = aws_client
        self.timeout_seconds = timeout_seconds
        self.endpoint = (endpoint or f"https://email.{aws_client.region}.amazonaws.com").rstrip("/")

    def create_configuration_set(self, name: str):
        """Create a configuration set.

        Args:
            name: Configuration set name

        Returns:
            Ok(name) when created or already present, Err otherwise
        """
        result = self._post("/v2/email/configuration-sets", {"ConfigurationSetName": name})
        if result.is_ok:
            return Ok(name)
        return result

    def create_event_destination(self, configuration_set_name: str,
                                 destination_name: str, topic_arn: str):
        """Attach an SNS event destination tracking every email event type.

        Args:
            configuration_set_name: Existing configuration set name
            destination_name: Event destination name
            topic_arn: SNS topic receiving the events

        Returns:
            Ok(destination_name) when created or already present, Err otherwise
        """
        payload = {
            "EventDestinationName": destination_name,
            "EventDestination": {
                "Enabled": True,
                "MatchingEventTypes": list(TRACKED_EVENT_TYPES),
                "SnsDestination": {"TopicArn": topic_arn},
            },
        }
        path = (
            f"/v2/email/configuration-sets/{quote(configuration_set_name, safe='')}"
            "/event-destinations"
        )
        result = self._post(path, payload)
        if result.is_ok:
            return Ok(destination_name)
        return result

    def _post(self, path: str, payload: Dict[str, Any]):
        try:
            status, headers, body = self._signed_request("POST", path, payload)
        except Exception as e:
            logger.error(f"SES v2 request to {path} failed: {e}")
            return Err(kind="transport_error", message=str(e) or repr(e))

        if 200 <= status < 300:
            return Ok(body)

        if status == HTTPStatus.CONFLICT:
            logger.info(f"SES v2 resource at {path} already exists")
            return Ok(body)

        return self._interpret_error(status, headers, body)

    @staticmethod
    def _interpret_error(status: int, headers: Dict[str, str], body: bytes):
        text = body.decode("utf-8", errors="replace")
        try:
            document = json.loads(text) if text else {}
        except ValueError:
            document = None

        if not isinstance(document, dict):
            return Err(kind="http_error", message=text or f"HTTP {status}", status=status)

        error_type = str(document.get("__type") or headers.get("x-amzn-errortype") or "")
        error_type = error_type.split(":")[0].split("#")[-1]
        message = str(document.get("message") or document.get("Message") or "")

        if error_type == ALREADY_EXISTS_TYPE or "already exists" in message:
            return Ok(body)

        return Err(kind=error_type or "http_error", message=message or text, status=status)

    def _signed_request(self, method: str, path: str,
                        payload: Dict[str, Any]) -> Tuple[int, Dict[str, str], bytes]:
        url = f"{self.endpoint}{path}"
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}

        aws_request = AWSRequest(method=method, url=url, data=body, headers=headers)
        SigV4Auth(
            self.aws_client.get_credentials(), SIGNING_SERVICE_NAME, self.aws_client.region
        ).add_auth(aws_request)
        prepared = aws_request.prepare()

        req = urllib.request.Request(
            url=url,
            data=body,
            method=method,
            headers=dict(prepared.headers),
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.status, _lower_headers(resp.headers), resp.read() or b""
        except urllib.error.HTTPError as http_err:
            # HTTPError is also a valid response; read body for context.
            payload_bytes = http_err.read() or b""
            return http_err.code, _lower_headers(http_err.headers), payload_bytes


def _lower_headers(headers) -> Dict[str, str]:
    if headers is None:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}
