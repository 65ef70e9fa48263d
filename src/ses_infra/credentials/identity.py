"""Caller identity parsing.

GetCallerIdentity bodies arrive either as a parsed mapping (boto3 returns
``UserId``/``Account``/``Arn``; stubs and other transports may use lower
or snake case keys) or as the raw XML document. Both shapes are accepted.
"""

import xml.etree.ElementTree as ElementTree
from typing import Any, Dict, Optional

from ..core.results import Err, Ok


IDENTITY_KEYS = {
    "user_id": ("UserId", "user_id", "userId"),
    "account_id": ("Account", "account", "account_id"),
    "arn": ("Arn", "arn"),
}


def _from_mapping(body: Dict[Any, Any]) -> Dict[str, Optional[str]]:
    fields = {}
    for field, candidates in IDENTITY_KEYS.items():
        fields[field] = next(
            (body[key] for key in candidates if body.get(key)), None
        )
    return fields


def _from_xml(body: str) -> Dict[str, Optional[str]]:
    root = ElementTree.fromstring(body)
    values = {}
    for element in root.iter():
        tag = element.tag.rsplit("}", 1)[-1]
        if element.text and element.text.strip():
            values.setdefault(tag, element.text.strip())
    return {field: values.get(candidates[0]) for field, candidates in IDENTITY_KEYS.items()}


def parse_identity(body: Any):
    """Extract user id, account id and ARN from an identity response.

    Args:
        body: Parsed mapping or raw XML string/bytes

    Returns:
        Ok(dict with user_id, account_id, arn) or Err(response_error)
    """
    try:
        if isinstance(body, dict):
            fields = _from_mapping(body)
        elif isinstance(body, (str, bytes)):
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            fields = _from_xml(text)
        else:
            return Err(kind="response_error", message="Invalid STS response format")
    except (ElementTree.ParseError, UnicodeDecodeError) as e:
        return Err(kind="response_error", message=f"XML parsing error: {e}")

    missing = [field for field, value in fields.items() if not value]
    if missing:
        return Err(
            kind="response_error",
            message=f"Could not parse {', '.join(missing)} from STS response",
        )
    return Ok(fields)


def extract_account_id(body: Any) -> Optional[str]:
    """Extract only the account id, tolerating either response shape.

    Args:
        body: Parsed mapping or raw XML string/bytes

    Returns:
        Account ID or None when it cannot be found
    """
    if isinstance(body, dict):
        return _from_mapping(body)["account_id"]
    if isinstance(body, (str, bytes)):
        try:
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            return _from_xml(text)["account_id"]
        except (ElementTree.ParseError, UnicodeDecodeError):
            return None
    return None
