"""Example recognition adapter.

Use this module as a reference when implementing new recognition adapters.
Implement BaseRecognitionClient and register the provider in RecognizerFactory.
"""

from typing import Any, ClassVar

from app.recognition.base import BaseRecognitionClient
from app.recognition.models import RecognitionRequest


class ExampleRecognitionClient(BaseRecognitionClient):
    """Example adapter that returns a fixed valid recognition payload.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, Any]] = {
        "documentType": "receipt",
        "vendorName": "Example Store",
        "transactionDate": "2024-05-21",
        "totalAmount": 12.5,
        "currency": "MYR",
        "transactionKind": "expense",
        "suggestedCategoryId": 1,
        "suggestedCategoryKind": "expense",
        "suggestedPaymentMethodId": None,
        "confidenceScore": 0.9,
    }

    def recognize(self, request: RecognitionRequest) -> dict[str, Any]:
        _ = request
        return dict(self.DEFAULT_RESPONSE)
