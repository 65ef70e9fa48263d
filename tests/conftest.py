"""Shared pytest fixtures."""

import pytest
from botocore.exceptions import ClientError


OVERRIDE_VARIABLES = (
    "AWS_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "SES_INFRA_PROJECT_NAME",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host AWS settings out of configuration tests."""
    for variable in OVERRIDE_VARIABLES:
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientError instances."""

    def _make(code, status=400, message="", operation="Operation"):
        return ClientError(
            {
                "Error": {"Code": code, "Message": message or code},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    return _make
