"""
Custom exceptions for the plan executor
"""

from typing import Any, Optional


class PlanExecutionError(Exception):
    """Base exception for all plan executor errors"""
    pass


class InvalidPlanError(PlanExecutionError):
    """Raised when a plan is structurally invalid - nothing is executed"""
    pass


class StepError(PlanExecutionError):
    """Base for errors scoped to a single step - the step fails, the plan continues"""

    kind = 'step_error'

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MissingVariableError(StepError):
    """Raised when a {{variable}} placeholder has no value in the execution context"""

    kind = 'missing_variable'

    def __init__(self, names):
        self.names = list(names)
        super().__init__(f"Unresolved template variable(s): {', '.join(self.names)}")


class TransportError(StepError):
    """Raised on connection failures and timeouts"""

    kind = 'transport_error'


class UpstreamError(StepError):
    """Raised when the API answers with a non-success status code"""

    kind = 'upstream_error'
