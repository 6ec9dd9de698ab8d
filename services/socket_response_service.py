from typing import Optional

from builders.websocket_events import WebSocketEventBuilder
from models.execution_result import ExecutionResult
from models.step_result import StepResult


class WebSocketResponseService:
    """Centralized service for handling all WebSocket emit operations."""

    def __init__(self, socketio, room: Optional[str] = None):
        self.socketio = socketio
        self.room = room

    def _emit(self, event: str, payload: dict):
        if self.room is None:
            self.socketio.emit(event, payload)
        else:
            self.socketio.emit(event, payload, to=self.room)

    def for_room(self, room: str) -> 'WebSocketResponseService':
        """Same socket, events addressed to a single client."""
        return WebSocketResponseService(self.socketio, room)

    def emit_status(self, message: str, status: str):
        """Emit status update."""
        self._emit('status', WebSocketEventBuilder.build_status_event(message, status).to_dict())

    def emit_error(self, message: str):
        """Emit error message."""
        self._emit('error', WebSocketEventBuilder.build_error_event(message).to_dict())

    def emit_connection_status(self, message: str = 'Connected to Plan Executor Server'):
        """Emit connection status."""
        self.emit_status(message, 'connected')

    def emit_step_completed(self, step_result: StepResult):
        """Emit step completion status."""
        self._emit('step_completed', WebSocketEventBuilder.build_step_completed_event(step_result).to_dict())

    def emit_plan_complete(self, execution_result: ExecutionResult):
        """Emit the execution report once every step has a result."""
        self._emit('plan_complete', WebSocketEventBuilder.build_plan_complete_event(execution_result).to_dict())

    # Processing status methods
    def emit_executing_status(self):
        """Emit executing status."""
        self.emit_status('Starting execution of plan...', 'executing')

    def emit_executing_step_status(self, step_number: int, step_description: str):
        """Emit executing step status."""
        self.emit_status(f'Executing step {step_number}: {step_description}', 'executing_step')

    def emit_cancelling_status(self):
        """Emit cancelling status."""
        self.emit_status('Cancelling execution; steps not yet started will be skipped...', 'cancelling')
