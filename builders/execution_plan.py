from typing import List, Dict, Any, Optional, Tuple
from exceptions import InvalidPlanError
from models.execution_plan import ExecutionPlan, ExecutionStep


def _as_index(value: Any, field_name: str, position: int) -> int:
    if isinstance(value, bool):
        raise InvalidPlanError(f"Step {position}: '{field_name}' must be an integer step index, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidPlanError(f"Step {position}: '{field_name}' must be an integer step index, got {value!r}")


class ExecutionPlanBuilder:
    """Builder for execution plan data structures."""

    @staticmethod
    def build_execution_plan(description: str, steps: List[ExecutionStep]) -> ExecutionPlan:
        """Build ExecutionPlan from components, ordered by step index."""
        return ExecutionPlan(
            description=description,
            steps=tuple(sorted(steps, key=lambda step: step.index))
        )

    @staticmethod
    def build_execution_step(index: int, path: str, method: str = 'GET', description: str = '',
                             query_parameters: Optional[Dict[str, Any]] = None,
                             depends_on: Tuple[int, ...] = (),
                             skip_if_previous_has_results: Optional[int] = None,
                             output_mapping: Optional[Dict[str, str]] = None,
                             timeout: Optional[float] = None) -> ExecutionStep:
        """Build ExecutionStep from components."""
        return ExecutionStep(
            index=index,
            path=path,
            method=method.upper(),
            description=description,
            query_parameters=dict(query_parameters or {}),
            depends_on=tuple(depends_on),
            skip_if_previous_has_results=skip_if_previous_has_results,
            output_mapping=dict(output_mapping or {}),
            timeout=timeout
        )

    @staticmethod
    def step_from_dict(step: Dict[str, Any], position: int) -> ExecutionStep:
        if not isinstance(step, dict):
            raise InvalidPlanError(f"Step {position}: expected an object, got {type(step).__name__}")

        raw_index = step.get('index', step.get('step'))
        index = position if raw_index is None else _as_index(raw_index, 'step', position)

        path = step.get('path')
        if not isinstance(path, str) or not path.strip():
            raise InvalidPlanError(f"Step {index}: 'path' is required")

        method = step.get('method') or 'GET'
        if not isinstance(method, str):
            raise InvalidPlanError(f"Step {index}: 'method' must be a string")

        query_parameters = step.get('queryParameters') or {}
        if not isinstance(query_parameters, dict):
            raise InvalidPlanError(f"Step {index}: 'queryParameters' must be an object")

        raw_depends_on = step.get('dependsOn')
        if raw_depends_on is None:
            depends_on = ()
        elif isinstance(raw_depends_on, list):
            depends_on = tuple(_as_index(value, 'dependsOn', index) for value in raw_depends_on)
        else:
            depends_on = (_as_index(raw_depends_on, 'dependsOn', index),)

        raw_skip = step.get('skipIfPreviousHasResults')
        skip_if_previous_has_results = None if raw_skip is None else _as_index(raw_skip, 'skipIfPreviousHasResults', index)

        output_mapping = step.get('outputMapping') or {}
        if not isinstance(output_mapping, dict) or not all(
                isinstance(name, str) and isinstance(path_expr, str) for name, path_expr in output_mapping.items()):
            raise InvalidPlanError(f"Step {index}: 'outputMapping' must map variable names to path strings")

        timeout = step.get('timeoutSeconds')
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
            raise InvalidPlanError(f"Step {index}: 'timeoutSeconds' must be a positive number")

        return ExecutionPlanBuilder.build_execution_step(
            index=index,
            path=path.strip(),
            method=method,
            description=step.get('description') or '',
            query_parameters=query_parameters,
            depends_on=depends_on,
            skip_if_previous_has_results=skip_if_previous_has_results,
            output_mapping=output_mapping,
            timeout=timeout
        )

    @staticmethod
    def validate(plan: ExecutionPlan) -> ExecutionPlan:
        '''
        Reject duplicate indices and any dependsOn / skipIfPreviousHasResults
        reference that does not point at an existing, strictly earlier step.
        Since every edge points backward, index order is a valid execution order.
        '''
        seen = set()
        for step in plan.steps:
            if step.index in seen:
                raise InvalidPlanError(f"Duplicate step index {step.index}")
            seen.add(step.index)

        for step in plan.steps:
            references = [('dependsOn', ref) for ref in step.depends_on]
            if step.skip_if_previous_has_results is not None:
                references.append(('skipIfPreviousHasResults', step.skip_if_previous_has_results))
            for field_name, ref in references:
                if ref >= step.index:
                    raise InvalidPlanError(
                        f"Step {step.index}: '{field_name}' references step {ref}, which does not run earlier")
                if ref not in seen:
                    raise InvalidPlanError(f"Step {step.index}: '{field_name}' references unknown step {ref}")
        return plan

    @staticmethod
    def from_dict(plan: Dict[str, Any]) -> ExecutionPlan:
        if not isinstance(plan, dict):
            raise InvalidPlanError("Plan must be a JSON object")
        steps = plan.get('steps', plan.get('endpoints'))
        if steps is None:
            steps = []
        if not isinstance(steps, list):
            raise InvalidPlanError("'steps' must be a list")

        execution_steps = [
            ExecutionPlanBuilder.step_from_dict(step, position)
            for position, step in enumerate(steps, start=1)
        ]
        execution_plan = ExecutionPlanBuilder.build_execution_plan(plan.get('description') or '', execution_steps)
        return ExecutionPlanBuilder.validate(execution_plan)
