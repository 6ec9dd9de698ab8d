from typing import List, Dict, Any
from models.execution_result import ExecutionResult, ExecutionStatus
from models.step_result import StepResult
from models.execution_plan import ExecutionPlan
from utils import result_has_data


class ExecutionResultBuilder:

    @staticmethod
    def build_executed_endpoint(plan: ExecutionPlan, step_result: StepResult) -> Dict[str, Any]:
        """Shape one dispatched step the way the synthesis stage reads it."""
        step = plan.get_step(step_result.index)
        return {
            'specification': {
                'step': step_result.index,
                'method': step_result.method,
                'path': step_result.path,
                'queryParameters': step_result.query_parameters or {},
                'description': step.description if step else step_result.description,
            },
            'statusCode': step_result.status_code,
            'result': step_result.body if step_result.succeeded else None,
            'error': step_result.error,
            'executionTimeMs': step_result.elapsed_ms,
            'hasData': step_result.succeeded and result_has_data(step_result.body),
        }

    @staticmethod
    def build_aggregated_payload(plan: ExecutionPlan, step_results: List[StepResult],
                                 variables: Dict[str, Any], success: bool) -> Dict[str, Any]:
        return {
            'planDescription': plan.description,
            'success': success,
            'variables': dict(variables),
            'executedEndpoints': [
                ExecutionResultBuilder.build_executed_endpoint(plan, step_result)
                for step_result in step_results
                if step_result.dispatched
            ],
        }

    @staticmethod
    def build_execution_result(plan: ExecutionPlan, step_results: List[StepResult],
                               variables: Dict[str, Any], cancelled: bool = False) -> ExecutionResult:
        """Build the execution report from the per-step results."""
        if cancelled:
            status = ExecutionStatus.CANCELLED
        elif any(step_result.failed for step_result in step_results):
            status = ExecutionStatus.FAILED
        else:
            status = ExecutionStatus.COMPLETED

        return ExecutionResult(
            plan_description=plan.description,
            step_results=step_results,
            status=status,
            variables=dict(variables),
            aggregated_payload=ExecutionResultBuilder.build_aggregated_payload(
                plan, step_results, variables, status == ExecutionStatus.COMPLETED
            )
        )
