from collections.abc import Callable
from typing import ClassVar

from app.config.settings import Settings
from app.documents.models import ReferenceData
from app.pdf.factory import PdfExtractorFactory
from app.recognition.base import BaseRecognitionClient
from app.recognition.example_client_adapter import ExampleRecognitionClient
from app.recognition.http_client_adapter import HttpRecognitionClient
from app.recognition.llm_recognizer import LlmRecognitionClient
from app.recognition.openai_client_adapter import OpenAIClientAdapter
from app.storage.base import BaseBlobStore


class RecognizerFactory:
    """Creates the configured recognition adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
    }

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        blob_store: BaseBlobStore,
        reference_data_loader: Callable[[], ReferenceData] | None = None,
    ) -> BaseRecognitionClient:
        """Create a configured recognizer from application settings."""
        provider = settings.recognition_provider.lower()
        if provider == "example":
            return ExampleRecognitionClient()
        if provider == "http":
            return HttpRecognitionClient(
                url=settings.recognition_http_url,
                api_key=settings.recognition_http_api_key,
                timeout_seconds=settings.recognition_timeout_seconds,
            )
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=settings.recognition_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return LlmRecognitionClient(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            temperature=settings.recognition_openai_temperature,
            blob_store=blob_store,
            pdf_extractor=PdfExtractorFactory.create(settings),
            default_currency=settings.default_currency,
            reference_data_loader=reference_data_loader,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.recognition_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "recognition_openai_compatible_base_url is required for "
                    "recognition_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "http",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown recognition provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.recognition_openai_api_key,
            "openai_compatible": settings.recognition_openai_compatible_api_key,
            "openrouter": settings.recognition_openrouter_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.recognition_openai_model_name,
            "openai_compatible": settings.recognition_openai_compatible_model_name,
            "openrouter": settings.recognition_openrouter_model_name,
        }
        return key_map.get(provider, "") or ""
