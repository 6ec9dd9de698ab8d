from dataclasses import dataclass
from typing import Any, Optional
from .datamodel import DataModel


@dataclass
class ApiResponse(DataModel):
    '''
    What the HTTP capability hands back for one request.
    body is the decoded JSON document, raw text when the body is not JSON,
    or None when the response had no content.
    '''
    method: str
    url: str
    status_code: int
    body: Any = None
    elapsed_ms: Optional[int] = None

    def is_success(self, failure_status_threshold: int = 400) -> bool:
        return self.status_code < failure_status_threshold
