import pytest
from unittest.mock import patch

import server
from server import app, socketio
from tests.conftest import FakeApi, SEARCH_PATH


@pytest.fixture
def client():
    """Create a test client for the Flask app."""
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def socketio_client(client):
    """Create a SocketIO test client."""
    return socketio.test_client(app, flask_test_client=client)


@pytest.fixture
def patched_api(label_routes):
    """Route the shared executor through a FakeApi."""
    api = FakeApi(label_routes)
    with patch.object(server.executor_service, 'api_service', api):
        yield api


def received_events(socketio_client, name):
    return [event['args'][0] for event in socketio_client.get_received() if event['name'] == name]


@pytest.mark.integration
class TestHttpEndpoints:

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_execute_plan_returns_report(self, client, patched_api, label_plan_dict):
        response = client.post('/api/plan/execute', json={'plan': label_plan_dict})

        assert response.status_code == 200
        report = response.get_json()
        assert report['success'] is True
        assert report['status'] == 'completed'
        assert [r['index'] for r in report['step_results']] == [1, 2, 3]
        assert report['variables'] == {'documentGuid': 'g1'}
        assert len(report['aggregated_payload']['executedEndpoints']) == 3
        assert len(patched_api.calls) == 3

    def test_execute_plan_with_variables(self, client, patched_api):
        plan = {'steps': [{'step': 1, 'path': '/api/Label/section/content/{{documentGuid}}'}]}
        response = client.post('/api/plan/execute', json={'plan': plan, 'variables': {'documentGuid': 'g1'}})

        assert response.get_json()['step_results'][0]['status'] == 'succeeded'

    def test_invalid_plan_is_rejected(self, client, patched_api):
        plan = {'steps': [
            {'step': 1, 'path': SEARCH_PATH, 'dependsOn': 2},
            {'step': 2, 'path': SEARCH_PATH},
        ]}
        response = client.post('/api/plan/execute', json={'plan': plan})

        assert response.status_code == 400
        assert response.get_json()['error'].startswith('Invalid execution plan')
        assert patched_api.calls == []

    def test_missing_plan_is_rejected(self, client):
        response = client.post('/api/plan/execute', json={'variables': {}})
        assert response.status_code == 400
        assert 'No plan provided' in response.get_json()['error']

    def test_non_object_variables_rejected(self, client, label_plan_dict):
        response = client.post('/api/plan/execute', json={'plan': label_plan_dict, 'variables': ['x']})
        assert response.status_code == 400

    def test_unexpected_error_returns_500(self, client, label_plan_dict):
        with patch.object(server.executor_service, 'execute_plan', side_effect=RuntimeError('boom')):
            response = client.post('/api/plan/execute', json={'plan': label_plan_dict})
        assert response.status_code == 500
        assert 'boom' in response.get_json()['error']


@pytest.mark.websocket
class TestSocketEvents:

    def test_connect_emits_connection_status(self, socketio_client):
        statuses = received_events(socketio_client, 'status')
        assert statuses[0]['status'] == 'connected'

    def test_execute_plan_streams_progress(self, socketio_client, patched_api, label_plan_dict):
        socketio_client.get_received()
        socketio_client.emit('execute_plan', {'plan': label_plan_dict})
        received = socketio_client.get_received()

        names = [event['name'] for event in received]
        assert names.count('step_completed') == 3
        assert names[-1] == 'plan_complete'

        statuses = [event['args'][0]['status'] for event in received if event['name'] == 'status']
        assert statuses == ['executing', 'executing_step', 'executing_step', 'executing_step']

        completed = [event['args'][0] for event in received if event['name'] == 'step_completed']
        assert [event['step_number'] for event in completed] == [1, 2, 3]
        assert completed[0]['variables'] == {'documentGuid': 'g1'}

        complete = received[-1]['args'][0]
        assert complete['status'] == 'completed'
        assert complete['report']['success'] is True

    def test_skipped_step_reports_reason(self, socketio_client, label_plan_dict):
        api = FakeApi({SEARCH_PATH: (500, None)})
        socketio_client.get_received()
        with patch.object(server.executor_service, 'api_service', api):
            socketio_client.emit('execute_plan', {'plan': label_plan_dict})

        completed = received_events(socketio_client, 'step_completed')
        assert [event['status'] for event in completed] == ['failed', 'skipped', 'skipped']
        assert completed[1]['skip_reason'] == 'dependency_failed'

    def test_invalid_plan_emits_error(self, socketio_client, patched_api):
        socketio_client.get_received()
        socketio_client.emit('execute_plan', {'plan': {'steps': [{'step': 1}]}})

        errors = received_events(socketio_client, 'error')
        assert len(errors) == 1
        assert errors[0]['message'].startswith('Invalid execution plan')
        assert patched_api.calls == []

    def test_missing_plan_emits_error(self, socketio_client):
        socketio_client.get_received()
        socketio_client.emit('execute_plan', {})
        errors = received_events(socketio_client, 'error')
        assert 'No plan provided' in errors[0]['message']

    def test_execution_error_emits_error(self, socketio_client, label_plan_dict):
        socketio_client.get_received()
        with patch.object(server.executor_service, 'execute_plan', side_effect=RuntimeError('boom')):
            socketio_client.emit('execute_plan', {'plan': label_plan_dict})

        errors = received_events(socketio_client, 'error')
        assert errors[0]['message'] == 'An error occurred during execution: boom'
        assert server._active_executions == {}

    def test_cancel_without_execution_emits_error(self, socketio_client):
        socketio_client.get_received()
        socketio_client.emit('cancel_execution')

        errors = received_events(socketio_client, 'error')
        assert errors[0]['message'] == 'No execution in progress'
