import json
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from wpt_diff.data.config import HTTP_TIMEOUT
from wpt_diff.errors import FetchError, ParseError, SchemaError

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_HEADERS = {
    'Accept': 'application/json',
    'User-Agent': 'wpt-diff/1.0',
}


def get_json(url: str, params: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None,
             what: str = "JSON document") -> Any:
    """
    Sends a GET request and decodes the JSON body.

    Args:
        url (str): The URL to send the GET request to.
        params (Optional[Dict[str, Any]]): URL parameters to send with the request.
        session (Optional[requests.Session]): Session to reuse, if any.
        what (str): Human-readable name of the document, used in error messages.

    Returns:
        Any: The decoded JSON body.

    Raises:
        FetchError: If the request fails or returns a non-success status.
        ParseError: If the body is not valid JSON.
    """
    http = session or requests
    try:
        response = http.get(url, params=params, headers=DEFAULT_HEADERS, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Failed to fetch the {what}: {e}", url) from e

    return _decode(response, url, what)


def post_json(url: str, data: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None,
              what: str = "JSON document") -> Any:
    """
    Sends a POST request and decodes the JSON body.

    Args:
        url (str): The URL to send the POST request to.
        data (Optional[Dict[str, Any]]): Form data to send in the body of the request.
        session (Optional[requests.Session]): Session to reuse, if any.
        what (str): Human-readable name of the document, used in error messages.

    Returns:
        Any: The decoded JSON body.

    Raises:
        FetchError: If the request fails or returns a non-success status.
        ParseError: If the body is not valid JSON.
    """
    http = session or requests
    try:
        response = http.post(url, data=data, headers=DEFAULT_HEADERS, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Failed to fetch the {what}: {e}", url) from e

    return _decode(response, url, what)


def _decode(response: requests.Response, url: str, what: str) -> Any:
    try:
        return response.json()
    except (ValueError, json.JSONDecodeError) as e:
        raise ParseError(f"Failed to parse the {what} as JSON: {e}", url) from e


def validate_document(model: Type[ModelT], data: Any, url: str, what: str) -> ModelT:
    """
    Validates a decoded JSON document against a pydantic model.

    Raises:
        SchemaError: If the document doesn't match the model.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise SchemaError(f"The {what} did not have the expected shape: {e}", url) from e
