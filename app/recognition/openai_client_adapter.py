import httpx
import openai

from app.documents.exceptions import DispatchFailure, ValidationFailure
from app.recognition.client_base import BaseChatCompletionClient


class OpenAIClientAdapter(BaseChatCompletionClient):
    """Chat completion client built on the OpenAI-compatible API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: float,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

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
        user_content: str | list[dict[str, object]] = user_prompt
        if image_data_uri is not None:
            user_content = [
                {"type": "text", "text": user_prompt},
                {"type": "image_url", "image_url": {"url": image_data_uri}},
            ]
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "financial_document",
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise DispatchFailure(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise DispatchFailure(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ValidationFailure("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ValidationFailure("AI returned empty response")
        return content
