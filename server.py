from flask import Flask, jsonify, request
from flask_socketio import SocketIO
import logging
import threading
from typing import Any, Dict, Tuple

from config import settings
from exceptions import InvalidPlanError
from services.api_service import APIService
from services.executor_service import ExecutorService, CancellationToken
from services.socket_response_service import WebSocketResponseService
from models.execution_plan import ExecutionPlan
from models.execution_result import ExecutionResult
from builders.execution_plan import ExecutionPlanBuilder

logging.basicConfig(level=settings.LOG_LEVEL,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*")

# Initialize services
# APIService keeps one requests session per thread, so concurrent socket handlers do not share one
api_service = APIService(
    base_url=settings.API_BASE_URL,
    auth_token=settings.API_AUTH_TOKEN,
    default_timeout=settings.STEP_TIMEOUT_SECONDS
)
executor_service = ExecutorService(
    api_service,
    default_timeout=settings.STEP_TIMEOUT_SECONDS,
    failure_status_threshold=settings.FAILURE_STATUS_THRESHOLD,
    auto_extract_fields=settings.AUTO_EXTRACT_FIELDS,
    extraction_max_depth=settings.EXTRACTION_MAX_DEPTH
)
websocket_response_service = WebSocketResponseService(socketio)

# Cancellation tokens of the executions currently running, by client sid
_active_executions: Dict[str, CancellationToken] = {}
_active_executions_lock = threading.Lock()


def parse_execution_request(data: Any) -> Tuple[ExecutionPlan, Dict[str, Any]]:
    """Validate an {"plan": ..., "variables": ...} payload."""
    if not isinstance(data, dict) or not data.get('plan'):
        raise InvalidPlanError('No plan provided')
    variables = data.get('variables') or {}
    if not isinstance(variables, dict):
        raise InvalidPlanError("'variables' must be an object")
    return ExecutionPlanBuilder.from_dict(data['plan']), variables


@app.route('/api/health')
def health():
    return jsonify({'status': 'ok'})


@app.route('/api/plan/execute', methods=['POST'])
def execute_plan_route():
    """Execute a plan synchronously and return the execution report."""
    try:
        plan, variables = parse_execution_request(request.get_json(silent=True))
    except InvalidPlanError as e:
        return jsonify({'error': f'Invalid execution plan: {e}'}), 400

    try:
        execution_result: ExecutionResult = executor_service.execute_plan(plan, variables)
    except Exception as e:
        logger.exception("Error executing plan")
        return jsonify({'error': f'An error occurred during execution: {str(e)}'}), 500

    return jsonify(execution_result.to_dict())


@socketio.on('connect')
def handle_connect():
    """Handle client connection."""
    logger.info("Client connected: %s", request.sid)
    websocket_response_service.for_room(request.sid).emit_connection_status()


@socketio.on('disconnect')
def handle_disconnect(*args):
    """Handle client disconnection; a running plan stops before its next step."""
    logger.info("Client disconnected: %s", request.sid)
    with _active_executions_lock:
        token = _active_executions.get(request.sid)
    if token is not None:
        token.cancel()


@socketio.on('execute_plan')
def handle_execute_plan(data):
    """Execute a plan, streaming step progress and finishing with the report."""
    sid = request.sid
    responder = websocket_response_service.for_room(sid)
    try:
        plan, variables = parse_execution_request(data)
    except InvalidPlanError as e:
        responder.emit_error(f'Invalid execution plan: {e}')
        return

    token = CancellationToken()
    with _active_executions_lock:
        if sid in _active_executions:
            responder.emit_error('A plan is already executing for this connection')
            return
        _active_executions[sid] = token

    try:
        responder.emit_executing_status()
        execution_result: ExecutionResult = executor_service.execute_plan(
            plan, variables, websocket_service=responder, cancel_token=token
        )
        responder.emit_plan_complete(execution_result)
    except Exception as e:
        logger.exception("Error executing plan")
        responder.emit_error(f'An error occurred during execution: {str(e)}')
    finally:
        with _active_executions_lock:
            _active_executions.pop(sid, None)


@socketio.on('cancel_execution')
def handle_cancel_execution(data=None):
    """Stop dispatching the steps of this client's running plan."""
    responder = websocket_response_service.for_room(request.sid)
    with _active_executions_lock:
        token = _active_executions.get(request.sid)
    if token is None:
        responder.emit_error('No execution in progress')
        return
    responder.emit_cancelling_status()
    token.cancel()


if __name__ == '__main__':
    logger.info("WebSocket Server is ready!")
    socketio.run(app, debug=True, host=settings.SERVER_HOST, port=settings.SERVER_PORT)
