import json

import httpx
import pytest

from app.documents.exceptions import DispatchFailure, TimeoutFailure, ValidationFailure
from app.recognition.http_client_adapter import HttpRecognitionClient
from app.recognition.models import RecognitionRequest

_URL = "http://recognizer.test/process-document"


def _request() -> RecognitionRequest:
    return RecognitionRequest(
        document_id=7,
        owner_id="owner-1",
        storage_key="owner-1/abc.jpg",
        mime_type="image/jpeg",
    )


def _make_client(handler, api_key: str = "") -> HttpRecognitionClient:
    return HttpRecognitionClient(
        url=_URL,
        timeout_seconds=5,
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestHttpRecognitionClient:
    def test_posts_document_reference_and_returns_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"vendorName": "Acme Store", "totalAmount": 42.5})

        client = _make_client(handler, api_key="secret")
        body = client.recognize(_request())
        client.close()

        assert body == {"vendorName": "Acme Store", "totalAmount": 42.5}
        assert json.loads(seen[0].content) == {"documentId": 7, "storageKey": "owner-1/abc.jpg"}
        assert seen[0].headers["Authorization"] == "Bearer secret"

    def test_no_auth_header_without_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _make_client(handler).recognize(_request())

        assert "Authorization" not in seen[0].headers

    def test_error_status_carries_envelope_message(self) -> None:
        client = _make_client(lambda r: httpx.Response(500, json={"message": "model crashed"}))

        with pytest.raises(DispatchFailure, match="500: model crashed"):
            client.recognize(_request())

    def test_error_status_without_json(self) -> None:
        client = _make_client(lambda r: httpx.Response(502, text="bad gateway"))

        with pytest.raises(DispatchFailure, match="502"):
            client.recognize(_request())

    def test_message_only_body_is_error(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, json={"message": "no text found"}))

        with pytest.raises(DispatchFailure, match="no text found"):
            client.recognize(_request())

    def test_non_json_body_is_validation_failure(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, text="not json"))

        with pytest.raises(ValidationFailure, match="not JSON"):
            client.recognize(_request())

    def test_non_object_body_is_validation_failure(self) -> None:
        client = _make_client(lambda r: httpx.Response(200, json=[1, 2]))

        with pytest.raises(ValidationFailure, match="JSON object"):
            client.recognize(_request())

    def test_timeout_maps_to_timeout_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(TimeoutFailure):
            _make_client(handler).recognize(_request())

    def test_connection_error_maps_to_dispatch_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DispatchFailure, match="unreachable"):
            _make_client(handler).recognize(_request())
