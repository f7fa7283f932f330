from app.recognition.base import BaseRecognitionClient
from app.recognition.factory import RecognizerFactory
from app.recognition.models import RecognitionRequest

__all__ = ["BaseRecognitionClient", "RecognitionRequest", "RecognizerFactory"]
