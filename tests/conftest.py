"""
Pytest configuration and shared fixtures for the plan executor test suite.
This file provides common test utilities and fixtures used across multiple test files.
"""

import json
import pytest
import requests
from unittest.mock import Mock

from exceptions import TransportError
from models.api_response import ApiResponse
from services.api_service import APIService
from builders.execution_plan import ExecutionPlanBuilder


SEARCH_PATH = '/api/Label/search'
CONTENT_PATH = '/api/Label/section/content/g1'


class FakeApi:
    '''
    Stands in for the HTTP capability. Routes map a path to one of:
    - (status_code, body)
    - an exception instance, raised when the path is requested
    - a callable taking the query parameters and returning (status_code, body)
    Every request is recorded in `calls`.
    '''

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def request(self, method, path, query_parameters=None, timeout=None):
        self.calls.append({'method': method, 'path': path,
                           'query_parameters': dict(query_parameters or {}), 'timeout': timeout})
        outcome = self.routes.get(path, (404, {'error': 'not found'}))
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome = outcome(query_parameters or {})
        status_code, body = outcome
        return ApiResponse(method=method, url=path, status_code=status_code, body=body, elapsed_ms=5)

    @property
    def requested_paths(self):
        return [call['path'] for call in self.calls]


@pytest.fixture
def fake_api_factory():
    """Build a FakeApi from a routes mapping."""
    return FakeApi


@pytest.fixture
def label_routes():
    """Search finds one label; the plain section call is empty, the sectionCode fallback has content."""
    def section_content(query_parameters):
        if query_parameters.get('sectionCode'):
            return 200, [{'ContentText': 'Boxed warning text'}]
        return 200, []

    return {
        SEARCH_PATH: (200, [{'documentGUID': 'g1', 'productName': 'Lisinopril'}]),
        CONTENT_PATH: section_content,
    }


@pytest.fixture
def fake_api(label_routes):
    return FakeApi(label_routes)


@pytest.fixture
def label_plan_dict():
    """Search, read a section, fall back to a sectionCode lookup when the section was empty."""
    return {
        'description': 'Find the boxed warning for lisinopril',
        'steps': [
            {
                'step': 1,
                'method': 'GET',
                'path': SEARCH_PATH,
                'description': 'Search labels by product name',
                'queryParameters': {'productName': 'lisinopril'},
                'outputMapping': {'documentGuid': '$[0].documentGUID'}
            },
            {
                'step': 2,
                'path': '/api/Label/section/content/{{documentGuid}}',
                'description': 'Read the label sections',
                'dependsOn': 1
            },
            {
                'step': 3,
                'path': '/api/Label/section/content/{{documentGuid}}',
                'description': 'Fallback: read the boxed warning by LOINC code',
                'queryParameters': {'sectionCode': '34066-1'},
                'dependsOn': 1,
                'skipIfPreviousHasResults': 2
            }
        ]
    }


@pytest.fixture
def label_plan(label_plan_dict):
    return ExecutionPlanBuilder.from_dict(label_plan_dict)


@pytest.fixture
def mock_websocket_service():
    """Create a mock WebSocket service for testing."""
    service = Mock()

    # Mock all the emit methods
    service.emit_connection_status = Mock()
    service.emit_executing_status = Mock()
    service.emit_executing_step_status = Mock()
    service.emit_step_completed = Mock()
    service.emit_plan_complete = Mock()
    service.emit_error = Mock()

    return service


@pytest.fixture
def api_service():
    """A real APIService; tests patch its session."""
    return APIService(base_url='http://api.test/', auth_token='secret-token', default_timeout=7)


@pytest.fixture
def make_requests_response():
    """Build a requests.Response without touching the network."""
    def build(status_code=200, body=None, text=None, url='http://api.test/api/Label/search', method='GET'):
        response = requests.Response()
        response.status_code = status_code
        response.url = url
        if body is not None:
            response._content = json.dumps(body).encode('utf-8')
        elif text is not None:
            response._content = text.encode('utf-8')
        else:
            response._content = b''
        response.encoding = 'utf-8'
        response.request = requests.Request(method, url).prepare()
        return response

    return build


@pytest.fixture
def transport_error():
    return TransportError('Request timed out after 30s: GET /api/Label/search')


# Markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "websocket: mark test as a WebSocket test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
