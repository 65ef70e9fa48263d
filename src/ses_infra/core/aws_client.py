"""Centralized AWS client management with explicit credentials.

This module provides a centralized way to build AWS clients from a
caller-supplied access key pair while keeping one session per provisioning
run and applying the configured network timeouts to every client.
"""

from typing import Dict, Optional
import boto3
from botocore.config import Config


DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 30


class AWSClientManager:
    """AWS client factory bound to one credential pair and region.

    Clients are created lazily and cached per service and region. Sessions
    are never shared between managers, so concurrent runs for different
    projects do not interfere with each other.
    """

    def __init__(self, access_key_id: str, secret_access_key: str, region: str,
                 connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
                 read_timeout: int = DEFAULT_READ_TIMEOUT) -> None:
        """Initialize AWS client manager.

        Args:
            access_key_id: AWS access key ID
            secret_access_key: AWS secret access key
            region: Default AWS region for clients
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
        """
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, boto3.client] = {}
        self._access_key_id = access_key_id.strip()
        self._secret_access_key = secret_access_key.strip()
        self._region = region.strip()
        self._client_config = Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={'max_attempts': 1},
        )

    @property
    def region(self) -> str:
        """Default region for clients built by this manager."""
        return self._region

    def _get_session(self) -> boto3.Session:
        """Get or create boto3 session.

        Returns:
            boto3 session bound to the explicit credentials
        """
        if self._session is None:
            self._session = boto3.Session(
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                region_name=self._region,
            )
        return self._session

    def get_client(self, service_name: str, region_name: Optional[str] = None):
        """Get AWS service client for the specified region.

        Args:
            service_name: AWS service name (e.g., 'sqs', 'sns')
            region_name: AWS region name, defaults to the manager region

        Returns:
            Configured boto3 client for the service and region

        Raises:
            botocore.exceptions.BotoCoreError: When the client cannot be built
        """
        region_name = region_name or self._region
        client_key = f"{service_name}_{region_name}"

        if client_key not in self._clients:
            session = self._get_session()
            self._clients[client_key] = session.client(
                service_name, region_name=region_name, config=self._client_config
            )

        return self._clients[client_key]

    def get_credentials(self):
        """Get frozen credentials for request signing.

        Returns:
            botocore ReadOnlyCredentials for the session
        """
        return self._get_session().get_credentials().get_frozen_credentials()

