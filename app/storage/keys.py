import uuid
from pathlib import PurePosixPath


def build_storage_key(owner_id: str, filename: str) -> str:
    """Build '{owner_id}/{random}.{ext}' for a new upload.

    The random part is a uuid4, drawn from os.urandom.
    """
    extension = PurePosixPath(filename).suffix.lower().lstrip(".")
    name = uuid.uuid4().hex
    if extension:
        name = f"{name}.{extension}"
    return f"{owner_id}/{name}"
