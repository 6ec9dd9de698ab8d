from dataclasses import dataclass
from typing import Dict, Any, Optional
from .datamodel import DataModel

@dataclass
class StatusEvent(DataModel):
    message: str
    status: str

@dataclass
class ErrorEvent(DataModel):
    message: str

@dataclass
class StepCompletedEvent(DataModel):
    step_number: int
    description: str
    status: str
    status_code: Optional[int] = None
    skip_reason: Optional[str] = None
    error: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None

@dataclass
class PlanCompleteEvent(DataModel):
    report: Dict[str, Any]
    status: str = 'completed'
