"""AWS credentials verification and permission probing.

This module validates access key pairs, resolves the caller identity,
discovers available regions and probes the minimal read permissions the
email infrastructure relies on. No method raises into its caller: every
provider call goes through ``call_and_normalize`` and every outcome is an
``Ok`` or an ``Err``.

Permission probes check READ operations only. ``ListQueues`` does not
guarantee ``CreateQueue``; create permissions are only proven by running
the provisioning pipeline.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List

from ..core.aws_client import AWSClientManager, DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
from ..core.results import Err, Ok, call_and_normalize
from .identity import parse_identity


logger = logging.getLogger(__name__)


ACCESS_KEY_LENGTH = 20

GRANTED = "granted"
DENIED = "denied"

# Used when DescribeRegions is unavailable for the credentials.
FALLBACK_REGIONS = [
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "af-south-1",
    "ap-east-1",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-northeast-3",
    "ap-south-1",
    "ap-southeast-1",
    "ap-southeast-2",
    "ca-central-1",
    "eu-central-1",
    "eu-north-1",
    "eu-south-1",
    "eu-south-2",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "me-south-1",
    "sa-east-1",
]

PERMISSION_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "AuthFailure",
}

STATUS_ERROR_KINDS = {
    403: ("authentication_failed",
          "AWS authentication failed. Please check your access key and secret key."),
    404: ("authentication_failed",
          "AWS authentication failed. Region not found or incorrect."),
    429: ("rate_limited",
          "AWS API rate limit exceeded. Please try again later."),
}


class CredentialsValidator:
    """Verifies AWS credentials and probes email infrastructure permissions."""

    # (service, operation, client method, call kwargs)
    PERMISSION_PROBES = [
        ("sqs", "ListQueues", "list_queues", {}),
        ("sns", "ListTopics", "list_topics", {}),
        ("ses", "ListConfigurationSets", "list_configuration_sets", {"MaxItems": 1}),
        ("ec2", "DescribeRegions", "describe_regions", {}),
    ]

    OPTIONAL_SERVICES = {"ec2"}

    def __init__(self, client_factory: Callable[..., AWSClientManager] = AWSClientManager,
                 connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
                 read_timeout: int = DEFAULT_READ_TIMEOUT) -> None:
        """Initialize validator.

        Args:
            client_factory: Callable building an AWSClientManager from
                (access_key_id, secret_access_key, region, connect_timeout,
                read_timeout)
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
        """
        self.client_factory = client_factory
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    @staticmethod
    def validate_format(access_key_id: str, secret_access_key: str) -> bool:
        """Check credential format without any network call.

        Args:
            access_key_id: AWS access key ID
            secret_access_key: AWS secret access key

        Returns:
            True if the trimmed key is 20 characters and the secret is not empty
        """
        if not isinstance(access_key_id, str) or not isinstance(secret_access_key, str):
            return False
        return (
            len(access_key_id.strip()) == ACCESS_KEY_LENGTH
            and len(secret_access_key.strip()) > 0
        )

    def verify_credentials(self, access_key_id: str, secret_access_key: str, region: str):
        """Verify credentials using STS GetCallerIdentity.

        Args:
            access_key_id: AWS access key ID
            secret_access_key: AWS secret access key
            region: AWS region

        Returns:
            Ok({access_key_id, user_id, account_id, arn}) or Err with kind
            invalid_credentials, configuration_error, authentication_failed,
            rate_limited, network_error or response_error
        """
        if not self.validate_format(access_key_id, secret_access_key):
            return Err(
                kind="invalid_credentials",
                message="Invalid credential format. Access key should be 20 characters, "
                        "secret key should not be empty.",
            )

        client = self._build_client(access_key_id, secret_access_key, region, "sts")
        if not client.is_ok:
            return client

        response = call_and_normalize(client.value.get_caller_identity)
        if not response.is_ok:
            return self._classify_identity_error(response)

        identity = parse_identity(response.value)
        if not identity.is_ok:
            return Err(
                kind="response_error",
                message=f"Failed to parse AWS response: {identity.message}",
            )

        logger.info(f"AWS credentials verified for account {identity.value['account_id']}")
        return Ok({"access_key_id": access_key_id.strip(), **identity.value})

    def list_regions(self, access_key_id: str, secret_access_key: str, region: str):
        """List regions available to the account.

        Falls back to ``FALLBACK_REGIONS`` when DescribeRegions is denied or
        fails for any other reason.

        Args:
            access_key_id: AWS access key ID
            secret_access_key: AWS secret access key
            region: AWS region used for the EC2 call

        Returns:
            Ok(list of region names), or Err(configuration_error)
        """
        client = self._build_client(access_key_id, secret_access_key, region, "ec2")
        if not client.is_ok:
            return client

        response = call_and_normalize(client.value.describe_regions)
        if response.is_ok:
            regions = self._parse_regions(response.value)
            if regions:
                return Ok(regions)
            logger.error("EC2 DescribeRegions returned no regions. Using fallback.")
        elif self._is_permission_denied(response):
            logger.warning(
                "EC2 DescribeRegions permission missing. Using common regions list. "
                "Add 'ec2:DescribeRegions' to IAM policy for accurate region list."
            )
        else:
            logger.error(
                f"Failed to get regions from EC2 API: {response.kind}: {response.message}. "
                "Using fallback."
            )

        return Ok(list(FALLBACK_REGIONS))

    def check_permissions(self, access_key_id: str, secret_access_key: str, region: str):
        """Probe read permissions for the services the pipeline uses.

        The four probes are independent and read-only, so they run
        concurrently.

        Args:
            access_key_id: AWS access key ID
            secret_access_key: AWS secret access key
            region: AWS region

        Returns:
            Ok(permission report), e.g.
            ``{"sqs": {"ListQueues": "granted"}, ..., "ec2":
            {"DescribeRegions": "denied", "optional": True}}``
        """
        manager = call_and_normalize(
            self.client_factory,
            access_key_id, secret_access_key, region,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
        )

        # Clients are built here; boto3 sessions are not safe to share
        # across threads while creating clients.
        calls = {}
        for service, operation, method, kwargs in self.PERMISSION_PROBES:
            if not manager.is_ok:
                calls[service] = None
                continue
            client = call_and_normalize(manager.value.get_client, service)
            calls[service] = (getattr(client.value, method), kwargs) if client.is_ok else None

        with ThreadPoolExecutor(max_workers=len(self.PERMISSION_PROBES)) as executor:
            futures = {
                service: executor.submit(self._probe, calls[service])
                for service, _, _, _ in self.PERMISSION_PROBES
            }

        report: Dict[str, Dict] = {}
        for service, operation, _, _ in self.PERMISSION_PROBES:
            status = futures[service].result()
            report[service] = {operation: status}
            if service in self.OPTIONAL_SERVICES:
                report[service]["optional"] = True
            if status == DENIED:
                logger.warning(f"Permission probe {service}:{operation} denied")

        return Ok(report)

    @staticmethod
    def _probe(call) -> str:
        if call is None:
            return DENIED
        method, kwargs = call
        result = call_and_normalize(method, **kwargs)
        return GRANTED if result.is_ok else DENIED

    def _build_client(self, access_key_id: str, secret_access_key: str,
                      region: str, service: str):
        try:
            manager = self.client_factory(
                access_key_id, secret_access_key, region,
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
            )
            return Ok(manager.get_client(service))
        except Exception as e:
            return Err(
                kind="configuration_error",
                message=f"Failed to create AWS configuration: {e}",
            )

    @staticmethod
    def _classify_identity_error(error: Err) -> Err:
        if error.status in STATUS_ERROR_KINDS:
            kind, message = STATUS_ERROR_KINDS[error.status]
            return Err(kind=kind, message=message, status=error.status)
        return Err(
            kind="network_error",
            message=f"Network or AWS API error: {error.kind}: {error.message}",
            status=error.status,
        )

    @staticmethod
    def _is_permission_denied(error: Err) -> bool:
        return error.status == 403 or error.kind in PERMISSION_DENIED_CODES

    @staticmethod
    def _parse_regions(response) -> List[str]:
        if not isinstance(response, dict):
            return []
        names = [
            region.get("RegionName")
            for region in response.get("Regions", [])
            if isinstance(region, dict)
        ]
        return sorted(name for name in names if isinstance(name, str))
