from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from .datamodel import DataModel
from enum import Enum


class StepResultStatus(Enum):
    SUCCEEDED = 'succeeded'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class SkipReason(Enum):
    DEPENDENCY_FAILED = 'dependency_failed'
    PREVIOUS_HAS_RESULTS = 'previous_has_results'
    CANCELLED = 'cancelled'


@dataclass
class CallRecord(DataModel):
    """One HTTP call made on behalf of an array-expanded step."""
    path: str
    query_parameters: Dict[str, Any]
    expanded_value: Any = None
    status_code: Optional[int] = None
    body: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    elapsed_ms: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class StepResult(DataModel):
    index: int
    description: str
    status: StepResultStatus
    method: Optional[str] = None
    path: Optional[str] = None
    query_parameters: Optional[Dict[str, Any]] = None
    status_code: Optional[int] = None
    body: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    variables: Dict[str, Any] = field(default_factory=dict)
    elapsed_ms: Optional[int] = None
    expansions: List[CallRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == StepResultStatus.SUCCEEDED

    @property
    def skipped(self) -> bool:
        return self.status == StepResultStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status == StepResultStatus.FAILED

    @property
    def dispatched(self) -> bool:
        """True when at least one HTTP call was made for this step."""
        return self.status_code is not None or bool(self.expansions) or self.error_kind == 'transport_error'
