from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple
from .datamodel import DataModel


@dataclass(frozen=True)
class ExecutionStep(DataModel):
    '''
    One API call of a plan. query_parameters and output_mapping are wrapped
    in read-only mappings, so a step cannot change after the plan is built.
    '''
    index: int
    path: str
    method: str = 'GET'
    description: str = ''
    query_parameters: Mapping[str, Any] = field(default_factory=dict, hash=False)
    depends_on: Tuple[int, ...] = ()
    skip_if_previous_has_results: Optional[int] = None
    output_mapping: Mapping[str, str] = field(default_factory=dict, hash=False)
    timeout: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'query_parameters', MappingProxyType(dict(self.query_parameters)))
        object.__setattr__(self, 'output_mapping', MappingProxyType(dict(self.output_mapping)))
        object.__setattr__(self, 'depends_on', tuple(self.depends_on))

    def to_dict(self):
        return {
            'step': self.index,
            'method': self.method,
            'path': self.path,
            'description': self.description,
            'queryParameters': dict(self.query_parameters),
            'dependsOn': list(self.depends_on),
            'skipIfPreviousHasResults': self.skip_if_previous_has_results,
            'outputMapping': dict(self.output_mapping),
            'timeoutSeconds': self.timeout,
        }


@dataclass(frozen=True)
class ExecutionPlan(DataModel):
    description: str
    steps: Tuple[ExecutionStep, ...]

    def to_dict(self):
        return {
            'description': self.description,
            'steps': [step.to_dict() for step in self.steps],
        }

    def get_step(self, index: int) -> Optional[ExecutionStep]:
        return next((step for step in self.steps if step.index == index), None)

    @property
    def step_indices(self) -> List[int]:
        return [step.index for step in self.steps]

    @property
    def ordered_steps(self) -> List[ExecutionStep]:
        """Steps in index order, whatever order they were stored in."""
        return sorted(self.steps, key=lambda step: step.index)
