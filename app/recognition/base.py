from abc import ABC, abstractmethod
from typing import Any

from app.recognition.models import RecognitionRequest


class BaseRecognitionClient(ABC):
    """Contract for all recognition service adapters."""

    @abstractmethod
    def recognize(self, request: RecognitionRequest) -> dict[str, Any]:
        """Extract transaction fields from a stored document.

        Args:
            request: Document ID, owner and storage key of the uploaded file.

        Returns:
            Raw response object in the recognition service's wire format
            (documentType, vendorName, totalAmount, ...). Not yet validated.

        Raises:
            DispatchFailure: if the service cannot be reached or answers with an error.
            ValidationFailure: if the response is not a JSON object.
        """
