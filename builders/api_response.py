
from typing import Any, Optional
from models.api_response import ApiResponse


class APIResponseBuilder:
    @staticmethod
    def build_response(method: str, url: str, status_code: int, body: Any = None,
                       elapsed_ms: Optional[int] = None) -> ApiResponse:
        return ApiResponse(
            method=method,
            url=url,
            status_code=status_code,
            body=body,
            elapsed_ms=elapsed_ms
        )

    @staticmethod
    def decode_body(response) -> Any:
        '''
        JSON document when the body parses, the raw text when it does not,
        None when there is no content at all (e.g. 204).
        '''
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def from_requests_response(response, elapsed_ms: Optional[int] = None) -> ApiResponse:
        return APIResponseBuilder.build_response(
            method=response.request.method if response.request is not None else '',
            url=response.url,
            status_code=response.status_code,
            body=APIResponseBuilder.decode_body(response),
            elapsed_ms=elapsed_ms
        )
