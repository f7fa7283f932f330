"""Recognition backed by an LLM with structured output."""

import base64
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from app.documents.exceptions import DispatchFailure, ValidationFailure
from app.documents.models import ReferenceData
from app.logging.logger import Log
from app.pdf.base import BasePdfExtractor
from app.pdf.exceptions import PdfExtractionError
from app.recognition.base import BaseRecognitionClient
from app.recognition.client_base import BaseChatCompletionClient
from app.recognition.models import RecognitionRequest
from app.recognition.prompt_loader import load_json_schema, load_prompt_template
from app.storage.base import BaseBlobStore
from app.storage.exceptions import BlobStoreError

_SYSTEM_PROMPT = (
    "You are a precise financial document parser. Extract data exactly as "
    "specified in the schema. Return only valid JSON."
)
_IMAGE_PLACEHOLDER = "(see attached image)"


class LlmRecognitionClient(BaseRecognitionClient):
    """Reads the stored file and asks a chat model for the transaction fields.

    PDFs are converted to text first; images are attached as data URIs.
    """

    def __init__(
        self,
        *,
        client: BaseChatCompletionClient,
        model: str,
        blob_store: BaseBlobStore,
        pdf_extractor: BasePdfExtractor,
        default_currency: str,
        reference_data_loader: Callable[[], ReferenceData] | None = None,
        temperature: float = 0.1,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._blob_store = blob_store
        self._pdf_extractor = pdf_extractor
        self._default_currency = default_currency
        self._reference_data_loader = reference_data_loader
        self._temperature = max(0.0, min(0.2, temperature))
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def recognize(self, request: RecognitionRequest) -> dict[str, Any]:
        raw_bytes = self._load(request)
        if request.mime_type == "application/pdf":
            document_text = self._extract_pdf_text(raw_bytes)
            image_data_uri = None
        else:
            document_text = _IMAGE_PLACEHOLDER
            encoded = base64.b64encode(raw_bytes).decode("ascii")
            image_data_uri = f"data:{request.mime_type};base64,{encoded}"

        prompt = self._build_prompt(document_text)
        Log.debug(f"Recognition prompt for document {request.document_id}:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
            image_data_uri=image_data_uri,
        )
        Log.debug(f"AI raw response for document {request.document_id}:\n{raw_response}")
        return self._parse_json(raw_response)

    def _load(self, request: RecognitionRequest) -> bytes:
        try:
            return self._blob_store.get(request.storage_key)
        except BlobStoreError as exc:
            raise DispatchFailure(f"Could not read {request.storage_key}: {exc}") from exc

    def _extract_pdf_text(self, raw_bytes: bytes) -> str:
        try:
            text = self._pdf_extractor.extract(raw_bytes)
        except PdfExtractionError as exc:
            raise ValidationFailure(str(exc)) from exc
        if not text:
            raise ValidationFailure("No text extracted from document")
        return text

    def _build_prompt(self, document_text: str) -> str:
        reference = (
            self._reference_data_loader()
            if self._reference_data_loader is not None
            else ReferenceData()
        )
        return self._prompt_template.format(
            default_currency=self._default_currency,
            expense_categories=_format_categories(reference.expense_categories),
            income_categories=_format_categories(reference.income_categories),
            payment_methods="\n".join(f"{pid}: {name}" for pid, name in reference.payment_methods)
            or "(none)",
            document_text=document_text,
            json_schema=self._json_schema,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ValidationFailure(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ValidationFailure("JSON response must be an object")
        return parsed


def _format_categories(categories: list[tuple[int, str, str]]) -> str:
    if not categories:
        return "(none)"
    return "\n".join(
        f"{cid}: {name} - {description}" if description else f"{cid}: {name}"
        for cid, name, description in categories
    )
