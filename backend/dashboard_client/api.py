"""
Dashboard API client - thin wrapper over the /api/dashboard endpoints.

Every call goes through retry_with_backoff: connection errors, timeouts
and 5xx responses are retried (1s, 2s, 4s); 4xx responses such as the
404 "No matching BUID found" are raised at once.

Usage:
    from dashboard_client.api import DashboardAPI

    api = DashboardAPI("http://localhost:5000")
    resp = api.get_business(bucket_id=1, user_id=7, vertical="Energy")
    for row in resp.data:
        print(row["BUNAME"], resp.cached)
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from utils.retry import (
    DEFAULT_TIMEOUT_SECONDS,
    INITIAL_BACKOFF_SECONDS,
    MAX_RETRIES,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)

API_PREFIX = '/api/dashboard'


@dataclass
class ApiResponse:
    """Decoded {data, cached} envelope."""
    data: List[Dict[str, Any]] = field(default_factory=list)
    cached: bool = False


class ApiError(Exception):
    """HTTP failure from the dashboard API (status None for transport errors)."""

    def __init__(self, message: str, status: Optional[int] = None, response=None):
        super().__init__(message)
        self.status = status
        self.response = response

    @property
    def retryable(self) -> bool:
        return self.status is None or self.status >= 500


class DashboardAPI:

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        base_delay: float = INITIAL_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update({'Content-Type': 'application/json'})

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{API_PREFIX}{endpoint}"

    def _send(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(endpoint)
        try:
            response = self._session.request(method, url, json=body, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ApiError(f"Request to {endpoint} failed: {e}") from e

        if not response.ok:
            message = f"HTTP error! status: {response.status_code}"
            try:
                payload = response.json()
                if isinstance(payload, dict) and payload.get('error'):
                    message = str(payload['error'])
            except ValueError:
                pass
            raise ApiError(message, status=response.status_code, response=response)

        return response.json()

    def _request(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return retry_with_backoff(
            lambda: self._send(method, endpoint, body),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            retry_on=(ApiError,),
            should_retry=lambda e: e.retryable,
            sleep=self._sleep,
        )

    def _options(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        payload = self._request(method, endpoint, body) or {}
        return ApiResponse(
            data=list(payload.get('data') or []),
            cached=bool(payload.get('cached', False)),
        )

    # -------------------------------------------------------------------------
    # Filter endpoints
    # -------------------------------------------------------------------------

    def get_vertical(self, bucket_id: int, user_id: int) -> ApiResponse:
        return self._options('POST', '/filters/vertical', {
            'bucketId': bucket_id, 'userId': user_id,
        })

    def get_business(self, bucket_id: int, user_id: int, vertical: str) -> ApiResponse:
        return self._options('POST', '/filters/business', {
            'bucketId': bucket_id, 'userId': user_id, 'vertical': vertical,
        })

    def get_site(self, bucket_id: int, user_id: int, business: str) -> ApiResponse:
        return self._options('POST', '/filters/site', {
            'bucketId': bucket_id, 'userId': user_id, 'business': business,
        })

    def get_years(self) -> ApiResponse:
        return self._options('GET', '/filters/years')

    def get_months(self, year: str) -> ApiResponse:
        return self._options('POST', '/filters/months', {'year': year})

    # -------------------------------------------------------------------------
    # Metrics / cache management
    # -------------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        return self._request('GET', '/metrics')

    def clear_server_cache(self) -> Dict[str, Any]:
        return self._request('DELETE', '/cache')
