from pathlib import Path

from app.documents.exceptions import DispatchFailure

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the recognition prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled recognition_prompt.txt.

    Returns:
        The raw template string with placeholders.

    Raises:
        DispatchFailure: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "recognition_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DispatchFailure(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the structured-output JSON schema from a file.

    Defaults to the bundled recognition_schema.json.

    Raises:
        DispatchFailure: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "recognition_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DispatchFailure(f"Failed to load JSON schema: {exc}") from exc
