"""
Executor Service - Runs multi-step API plans with dependency, fallback and
variable-passing rules.
"""

import logging
import threading
import time
from typing import Dict, Any, List, Optional, Sequence, Union

from builders.execution_plan import ExecutionPlanBuilder
from builders.execution_result import ExecutionResultBuilder
from builders.step_response import StepResponseBuilder
from exceptions import MissingVariableError, StepError, TransportError, UpstreamError
from models.api_response import ApiResponse
from models.execution_plan import ExecutionPlan, ExecutionStep
from models.execution_result import ExecutionResult
from models.step_result import StepResult, SkipReason, CallRecord
from services.api_service import APIService
from services.socket_response_service import WebSocketResponseService
from utils import (
    DEFAULT_MAX_DEPTH,
    auto_extract_fields,
    extract_value_by_path,
    find_array_variable,
    find_property_deep,
    merge_bodies,
    resolve_step_templates,
    result_has_data,
)

logger = logging.getLogger(__name__)


class CancellationToken:
    """Caller-side abort signal. Steps not yet started when it fires are skipped."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ExecutorService:
    """Service for executing plans of dependent API calls."""

    def __init__(self, api_service: APIService, default_timeout: Optional[float] = None,
                 failure_status_threshold: int = 400, auto_extract_fields: Sequence[str] = (),
                 extraction_max_depth: int = DEFAULT_MAX_DEPTH):
        self.api_service = api_service
        self.default_timeout = default_timeout
        self.failure_status_threshold = failure_status_threshold
        self.auto_extract_fields = tuple(auto_extract_fields)
        self.extraction_max_depth = extraction_max_depth

    def evaluate_skip(self, step: ExecutionStep, results: Dict[int, StepResult]) -> Optional[StepResult]:
        """Return a Skipped result when the step's dependency or fallback condition says so."""
        unmet = [ref for ref in step.depends_on if not results[ref].succeeded]
        if unmet:
            failed_steps = ', '.join(str(ref) for ref in unmet)
            logger.info("Skipping step %s - dependency step(s) [%s] failed or were skipped", step.index, failed_steps)
            return StepResponseBuilder.build_step_skipped_response(
                step, SkipReason.DEPENDENCY_FAILED, f'Skipped: dependency step(s) [{failed_steps}] failed or were skipped'
            )

        check_step = step.skip_if_previous_has_results
        if check_step is not None:
            previous = results[check_step]
            if previous.succeeded and result_has_data(previous.body):
                logger.info("Skipping step %s - step %s returned data (fallback not needed)", step.index, check_step)
                return StepResponseBuilder.build_step_skipped_response(
                    step, SkipReason.PREVIOUS_HAS_RESULTS, f'Skipped: step {check_step} had results (fallback not needed)'
                )
            logger.debug("Step %s was empty - proceeding with fallback step %s", check_step, step.index)
        return None

    def dispatch(self, method: str, path: str, query_parameters: Dict[str, Any],
                 timeout: Optional[float]) -> ApiResponse:
        '''
        Issue one request; a status at or above the failure threshold raises UpstreamError.
        Anything else the HTTP capability raises becomes a TransportError.
        '''
        try:
            api_response = self.api_service.request(method, path, query_parameters, timeout=timeout)
        except StepError:
            raise
        except Exception as e:
            raise TransportError(f"Error making API call {method} {path}: {e}") from e
        if not api_response.is_success(self.failure_status_threshold):
            raise UpstreamError(f'HTTP {api_response.status_code}', api_response.status_code, api_response.body)
        return api_response

    def extract_outputs(self, step: ExecutionStep, body: Any) -> Dict[str, Any]:
        '''
        Pull the step's outputMapping variables out of the response body.
        A variable that cannot be found is left unset; that usually means a
        fallback step should take over, not that this step failed.
        '''
        extracted: Dict[str, Any] = {}
        if step.output_mapping:
            for name, path in step.output_mapping.items():
                value = extract_value_by_path(body, path, self.extraction_max_depth)
                if value is None:
                    value = find_property_deep(body, name, self.extraction_max_depth)
                if value is None:
                    logger.debug("Step %s: '%s' not found by path '%s' or deep search", step.index, name, path)
                    continue
                extracted[name] = value
                logger.debug("Step %s: stored variable '%s' = %r", step.index, name, value)
        elif self.auto_extract_fields:
            extracted = auto_extract_fields(body, self.auto_extract_fields, self.extraction_max_depth)
        return extracted

    def _step_timeout(self, step: ExecutionStep, timeout: Optional[float]) -> Optional[float]:
        return step.timeout or timeout or self.default_timeout

    def execute_expanded_step(self, step: ExecutionStep, context: Dict[str, Any], name: str,
                              values: List[Any], timeout: Optional[float],
                              cancel_token: Optional[CancellationToken]) -> StepResult:
        """Dispatch the step once per element of the list bound to `name`."""
        logger.info("Step %s: expanding '%s' into %d calls", step.index, name, len(values))
        calls: List[CallRecord] = []
        for value in values:
            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Step %s: cancelled after %d of %d expanded calls", step.index, len(calls), len(values))
                break
            scoped = dict(context)
            scoped[name] = value
            try:
                path, query_parameters = resolve_step_templates(step.path, step.query_parameters, scoped)
            except MissingVariableError as e:
                return StepResponseBuilder.build_step_error_response(step, e)

            started = time.monotonic()
            try:
                api_response = self.dispatch(step.method, path, query_parameters, timeout)
            except StepError as e:
                logger.warning("Step %s [%s=%s] failed: %s", step.index, name, value, e)
                calls.append(CallRecord(
                    path=path, query_parameters=query_parameters, expanded_value=value,
                    status_code=e.status_code, body=e.body, error=str(e), error_kind=e.kind,
                    elapsed_ms=int((time.monotonic() - started) * 1000)
                ))
                continue
            calls.append(CallRecord(
                path=path, query_parameters=query_parameters, expanded_value=value,
                status_code=api_response.status_code, body=api_response.body,
                elapsed_ms=api_response.elapsed_ms
            ))

        if not calls:
            return StepResponseBuilder.build_step_skipped_response(
                step, SkipReason.CANCELLED, 'Skipped: execution was cancelled'
            )

        body = merge_bodies(call.body for call in calls if call.succeeded)
        variables = self.extract_outputs(step, body) if any(call.succeeded for call in calls) else {}
        return StepResponseBuilder.build_expanded_step_response(step, calls, body, variables)

    def execute_single_step(self, step: ExecutionStep, context: Dict[str, Any],
                            timeout: Optional[float] = None,
                            cancel_token: Optional[CancellationToken] = None) -> StepResult:
        """Resolve templates, dispatch, and extract outputs for one step."""
        step_timeout = self._step_timeout(step, timeout)

        array_variable = find_array_variable(step.path, context)
        if array_variable:
            name, values = array_variable
            return self.execute_expanded_step(step, context, name, values, step_timeout, cancel_token)

        try:
            path, query_parameters = resolve_step_templates(step.path, step.query_parameters, context)
        except MissingVariableError as e:
            logger.warning("Step %s not dispatched: %s", step.index, e)
            return StepResponseBuilder.build_step_error_response(step, e)

        started = time.monotonic()
        try:
            api_response = self.dispatch(step.method, path, query_parameters, step_timeout)
        except StepError as e:
            logger.warning("Step %s failed: %s %s - %s", step.index, step.method, path, e)
            return StepResponseBuilder.build_step_error_response(
                step, e, path, query_parameters, elapsed_ms=int((time.monotonic() - started) * 1000)
            )

        variables = self.extract_outputs(step, api_response.body)
        logger.info("Step %s succeeded: %s %s -> %s (hasData: %s)", step.index, step.method, path,
                    api_response.status_code, result_has_data(api_response.body))
        return StepResponseBuilder.build_step_success_response(step, api_response, query_parameters, variables, path)

    def execute_plan(self, plan: ExecutionPlan, base_variables: Optional[Dict[str, Any]] = None,
                     websocket_service: Optional[WebSocketResponseService] = None,
                     cancel_token: Optional[CancellationToken] = None,
                     timeout: Optional[float] = None) -> ExecutionResult:
        '''
        Execute the steps of the plan sequentially in index order.

        Every dependency edge points at an earlier step, so a single forward
        pass is a valid order. The report holds exactly one StepResult per
        step: failures and skips never stop independent steps from running.

        Raises InvalidPlanError before anything is dispatched if the plan
        references missing or later steps.
        '''
        ExecutionPlanBuilder.validate(plan)

        context: Dict[str, Any] = dict(base_variables or {})
        results: Dict[int, StepResult] = {}
        step_results: List[StepResult] = []
        cancelled = False

        logger.info("Executing plan '%s' with %d step(s)", plan.description, len(plan.steps))
        for step in plan.ordered_steps:
            if cancel_token is not None and cancel_token.cancelled:
                cancelled = True
                step_result = StepResponseBuilder.build_step_skipped_response(
                    step, SkipReason.CANCELLED, 'Skipped: execution was cancelled'
                )
            else:
                step_result = self.evaluate_skip(step, results)
                if step_result is None:
                    if websocket_service:
                        websocket_service.emit_executing_step_status(step.index, step.description)
                    step_result = self.execute_single_step(step, context, timeout, cancel_token)
                    context.update(step_result.variables)

            results[step.index] = step_result
            step_results.append(step_result)
            if websocket_service:
                websocket_service.emit_step_completed(step_result)

        execution_result = ExecutionResultBuilder.build_execution_result(plan, step_results, context, cancelled)
        logger.info("Plan '%s' finished with status %s", plan.description, execution_result.status.value)
        return execution_result


def execute(plan: Union[ExecutionPlan, Dict[str, Any]], http_client: APIService,
            base_variables: Optional[Dict[str, Any]] = None,
            websocket_service: Optional[WebSocketResponseService] = None,
            cancel_token: Optional[CancellationToken] = None,
            timeout: Optional[float] = None, **executor_options) -> ExecutionResult:
    """Validate and execute a plan (an ExecutionPlan or its JSON dict) against http_client."""
    if not isinstance(plan, ExecutionPlan):
        plan = ExecutionPlanBuilder.from_dict(plan)
    executor = ExecutorService(http_client, **executor_options)
    return executor.execute_plan(plan, base_variables, websocket_service, cancel_token, timeout)
