from models.execution_result import ExecutionResult
from models.step_result import StepResult
from models.websocket_events import (
    StatusEvent, ErrorEvent, StepCompletedEvent, PlanCompleteEvent
)


class WebSocketEventBuilder:
    @staticmethod
    def build_status_event(message: str, status: str) -> StatusEvent:
        return StatusEvent(message=message, status=status)

    @staticmethod
    def build_error_event(message: str) -> ErrorEvent:
        return ErrorEvent(message=message)

    @staticmethod
    def build_step_completed_event(step_result: StepResult) -> StepCompletedEvent:
        return StepCompletedEvent(
            step_number=step_result.index,
            description=step_result.description,
            status=step_result.status.value,
            status_code=step_result.status_code,
            skip_reason=step_result.skip_reason.value if step_result.skip_reason else None,
            error=step_result.error,
            variables=step_result.variables
        )

    @staticmethod
    def build_plan_complete_event(execution_result: ExecutionResult) -> PlanCompleteEvent:
        return PlanCompleteEvent(report=execution_result.to_dict(), status=execution_result.status.value)
