from typing import Any

import httpx

from app.documents.exceptions import DispatchFailure, TimeoutFailure, ValidationFailure
from app.recognition.base import BaseRecognitionClient
from app.recognition.models import RecognitionRequest


class HttpRecognitionClient(BaseRecognitionClient):
    """Calls a recognition service over HTTP.

    Request body: {"documentId": ..., "storageKey": ...}. The service answers
    with the extracted fields or with an error envelope {"message": ...}.
    """

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float,
        api_key: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._url = url
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def recognize(self, request: RecognitionRequest) -> dict[str, Any]:
        try:
            response = self._client.post(self._url, json=request.to_payload())
        except httpx.TimeoutException as exc:
            raise TimeoutFailure(f"recognition service timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DispatchFailure(f"recognition service unreachable: {exc}") from exc

        body = self._decode(response)
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise DispatchFailure(
                f"recognition service returned {response.status_code}: "
                f"{message or response.reason_phrase}"
            )
        if not isinstance(body, dict):
            raise ValidationFailure("recognition response must be a JSON object")
        if set(body) == {"message"}:
            raise DispatchFailure(f"recognition service error: {body['message']}")
        return body

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            if response.is_error:
                return None
            raise ValidationFailure(f"recognition response is not JSON: {exc}") from exc
