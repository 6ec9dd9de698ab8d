from dataclasses import dataclass, field
from typing import Any, Dict, List
from .step_result import StepResult
from .datamodel import DataModel
from enum import Enum


class ExecutionStatus(Enum):
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


@dataclass
class ExecutionResult(DataModel):
    '''
    The execution report: one StepResult per plan step, in plan order,
    plus the final variables and the payload handed to synthesis.
    '''
    plan_description: str
    step_results: List[StepResult] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.COMPLETED
    variables: Dict[str, Any] = field(default_factory=dict)
    aggregated_payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED

    def get_step_result(self, index: int) -> StepResult:
        return next(result for result in self.step_results if result.index == index)

    def to_dict(self):
        data = super().to_dict()
        data['success'] = self.success
        return data
