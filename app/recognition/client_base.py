from abc import ABC, abstractmethod


class BaseChatCompletionClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
        image_data_uri: str | None = None,
    ) -> str:
        """Return provider response as plain text."""
