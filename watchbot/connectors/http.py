"""Shared HTTP helpers for connectors."""

from typing import Any, Optional, Tuple

import requests

from watchbot.core.errors import ConnectorError, MalformedResponseError

DEFAULT_TIMEOUT = 10


def request_json(
    session: requests.Session,
    method: str,
    url: str,
    what: str,
    timeout: float = DEFAULT_TIMEOUT,
    expected_status: int = 200,
    **kwargs: Any,
) -> Tuple[Any, requests.Response]:
    """
    Perform a request and decode its JSON body.
    
    Args:
        session: requests session carrying auth
        method: HTTP method
        url: Full URL
        what: Description used in error messages (e.g. "PR reviews")
        timeout: Per-call timeout in seconds
        expected_status: Status code treated as success
        **kwargs: Passed to session.request
        
    Returns:
        Tuple of (decoded JSON, response)
        
    Raises:
        ConnectorError: On network errors, timeouts or unexpected status codes
        MalformedResponseError: If the body is not valid JSON
    """
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except requests.Timeout as e:
        raise ConnectorError(f"Timed out fetching {what} after {timeout}s") from e
    except requests.RequestException as e:
        raise ConnectorError(f"Failed to fetch {what}: {e}") from e

    if response.status_code != expected_status:
        raise ConnectorError(
            f"Failed to fetch {what}: {response.status_code} - {_error_message(response)}"
        )

    try:
        return response.json(), response
    except ValueError as e:
        raise MalformedResponseError(f"Invalid JSON in {what} response: {e}") from e


def _error_message(response: requests.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(data, dict):
        if data.get("message"):
            return str(data["message"])
        if data.get("errorMessages"):
            return "; ".join(str(m) for m in data["errorMessages"])
    return str(data)[:200]
