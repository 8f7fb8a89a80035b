"""
GRACEFULSHUTDOWN - HTTP Client Abstraction

Provides abstraction layer for HTTP operations.
This allows mocking in tests and centralizes HTTP logic.
"""

from typing import Protocol, Dict, Any, List, Optional, Union
import requests
from requests import Response


class HttpClient(Protocol):
    """Protocol for HTTP operations."""

    def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 30,
    ) -> Response:
        """Perform HTTP GET request."""
        ...

    def post(
        self,
        url: str,
        data: Union[str, bytes, None] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30,
    ) -> Response:
        """Perform HTTP POST request."""
        ...


class RequestsHttpClient:
    """Real HTTP client using requests library."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()

    def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 30,
    ) -> Response:
        return self._session.get(url, headers=headers or {}, params=params or {}, timeout=timeout)

    def post(
        self,
        url: str,
        data: Union[str, bytes, None] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30,
    ) -> Response:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._session.post(url, data=data, headers=headers or {}, timeout=timeout)


class MockHttpClient:
    """
    Mock HTTP client for testing.

    GET requests are answered from a url -> content mapping. POST requests
    raise a ConnectionError for the first `fail_posts` calls and then
    answer with `post_status`.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        fail_posts: int = 0,
        post_status: int = 200,
    ):
        self._responses = responses or {}
        self._fail_posts = fail_posts
        self._post_status = post_status
        self._call_history: List[tuple[str, Dict, Dict]] = []
        self._post_history: List[tuple[str, Any]] = []

    def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 30,
    ) -> Response:
        # Record call
        self._call_history.append((url, headers or {}, params or {}))

        if url in self._responses:
            response = Response()
            response.status_code = 200
            response._content = str(self._responses[url]).encode()
            return response

        # Default response
        response = Response()
        response.status_code = 404
        return response

    def post(
        self,
        url: str,
        data: Union[str, bytes, None] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30,
    ) -> Response:
        self._post_history.append((url, data))

        if len(self._post_history) <= self._fail_posts:
            raise requests.ConnectionError(f"Connection refused: {url}")

        response = Response()
        response.status_code = self._post_status
        response.url = url
        return response

    def get_call_history(self) -> list[tuple[str, Dict, Dict]]:
        """Get history of GET calls for testing."""
        return self._call_history

    def get_post_history(self) -> list[tuple[str, Any]]:
        """Get history of POST calls for testing."""
        return self._post_history
