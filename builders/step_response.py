from typing import Dict, Any, List, Optional
from exceptions import StepError
from models.execution_plan import ExecutionStep
from models.step_result import StepResult, StepResultStatus, SkipReason, CallRecord
from models.api_response import ApiResponse


class StepResponseBuilder:
    @staticmethod
    def build_step_success_response(step: ExecutionStep, api_response: ApiResponse,
                                    query_parameters: Dict[str, Any], variables: Dict[str, Any],
                                    path: Optional[str] = None) -> StepResult:
        return StepResult(
            index=step.index,
            description=step.description,
            status=StepResultStatus.SUCCEEDED,
            method=step.method,
            path=path or api_response.url,
            query_parameters=query_parameters,
            status_code=api_response.status_code,
            body=api_response.body,
            variables=variables,
            elapsed_ms=api_response.elapsed_ms
        )

    @staticmethod
    def build_step_error_response(step: ExecutionStep, error: StepError, path: Optional[str] = None,
                                  query_parameters: Optional[Dict[str, Any]] = None,
                                  elapsed_ms: Optional[int] = None) -> StepResult:
        return StepResult(
            index=step.index,
            description=step.description,
            status=StepResultStatus.FAILED,
            method=step.method,
            path=path if path is not None else step.path,
            query_parameters=query_parameters if query_parameters is not None else dict(step.query_parameters),
            status_code=error.status_code,
            body=error.body,
            error=str(error),
            error_kind=error.kind,
            elapsed_ms=elapsed_ms
        )

    @staticmethod
    def build_step_skipped_response(step: ExecutionStep, reason: SkipReason, message: str) -> StepResult:
        return StepResult(
            index=step.index,
            description=step.description,
            status=StepResultStatus.SKIPPED,
            method=step.method,
            path=step.path,
            query_parameters=dict(step.query_parameters),
            error=message,
            skip_reason=reason
        )

    @staticmethod
    def build_expanded_step_response(step: ExecutionStep, calls: List[CallRecord], body: Any,
                                     variables: Dict[str, Any]) -> StepResult:
        '''
        One result for a step dispatched once per element of a list variable.
        Succeeds if any call succeeded; otherwise carries the first failure.
        '''
        succeeded = [call for call in calls if call.succeeded]
        elapsed_ms = sum(call.elapsed_ms or 0 for call in calls)
        if succeeded:
            return StepResult(
                index=step.index,
                description=step.description,
                status=StepResultStatus.SUCCEEDED,
                method=step.method,
                path=step.path,
                query_parameters=dict(step.query_parameters),
                status_code=succeeded[0].status_code,
                body=body,
                variables=variables,
                elapsed_ms=elapsed_ms,
                expansions=calls
            )

        first_failure = calls[0]
        return StepResult(
            index=step.index,
            description=step.description,
            status=StepResultStatus.FAILED,
            method=step.method,
            path=step.path,
            query_parameters=dict(step.query_parameters),
            status_code=first_failure.status_code,
            body=first_failure.body,
            error=f"All {len(calls)} expanded call(s) failed: {first_failure.error}",
            error_kind=first_failure.error_kind,
            elapsed_ms=elapsed_ms,
            expansions=calls
        )
