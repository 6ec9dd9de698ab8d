"""
API Service - the HTTP capability the plan executor dispatches steps through.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from builders.api_response import APIResponseBuilder
from exceptions import TransportError
from models.api_response import ApiResponse

logger = logging.getLogger(__name__)


class APIService:
    '''
    Issues requests against the target REST API and decodes the JSON responses.

    requests.Session is not safe to share between threads, so each thread
    that calls the service gets its own session unless one is passed in.
    '''

    def __init__(self, base_url: str, auth_token: str = '', default_timeout: float = 30.0,
                 session: Optional[requests.Session] = None, headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip('/')
        self.default_timeout = default_timeout
        self.headers = {'Accept': 'application/json'}
        if auth_token:
            self.headers['Authorization'] = f'Bearer {auth_token}'
        if headers:
            self.headers.update(headers)

        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def build_url(self, path: str) -> str:
        """Join a step path onto the base URL; absolute URLs pass through."""
        if path.startswith(('http://', 'https://')):
            return path
        if not self.base_url:
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def prepare_query_parameters(query_parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Drop null values and send booleans the way the API expects them."""
        prepared = {}
        for key, value in (query_parameters or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = 'true' if value else 'false'
            prepared[key] = value
        return prepared

    def request(self, method: str, path: str, query_parameters: Optional[Dict[str, Any]] = None,
                timeout: Optional[float] = None) -> ApiResponse:
        '''
        Make one API call. Returns the response whatever its status code;
        connection problems and timeouts raise TransportError.
        '''
        url = self.build_url(path)
        params = self.prepare_query_parameters(query_parameters)
        effective_timeout = timeout or self.default_timeout

        started = time.monotonic()
        try:
            response = self.session.request(method.upper(), url, params=params, timeout=effective_timeout)
        except requests.exceptions.Timeout as e:
            logger.warning("Request timed out after %ss: %s %s", effective_timeout, method, url)
            raise TransportError(f"Request timed out after {effective_timeout}s: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            logger.warning("Error making API call %s %s: %s", method, url, e)
            raise TransportError(f"Error making API call {method} {url}: {e}") from e

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug("%s %s -> %s in %dms", method, response.url, response.status_code, elapsed_ms)
        return APIResponseBuilder.from_requests_response(response, elapsed_ms)
