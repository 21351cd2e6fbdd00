"""Persistence for the gateway JSON config file.

The file lives on the persistent volume and survives restarts. Writes go
through a temp file in the same directory and an os.replace, so a crash
mid-write leaves either the old document or the new one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict


class DocumentError(Exception):
    """Raised when the config document cannot be read or written."""

    def __init__(self, path: Path, message: str, cause: Exception = None):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {message}")


def dump_document(document: Dict[str, Any]) -> str:
    """Serialize a document the way it is stored on disk."""
    return json.dumps(document, indent=2) + "\n"


class ConfigStore:
    """Reads and atomically writes one JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Dict[str, Any]:
        """Load the document.

        Raises:
            DocumentError: If the file is unreadable, not JSON, or its root
                is not an object.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(self.path, f"cannot read: {e}", e)

        try:
            data = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as e:
            raise DocumentError(self.path, f"invalid JSON: {e}", e)

        if not isinstance(data, dict):
            raise DocumentError(self.path, f"expected a JSON object, got {type(data).__name__}")
        return data

    def save(self, document: Dict[str, Any]) -> None:
        """Write the document atomically.

        Raises:
            DocumentError: If the temp file cannot be written or renamed.
        """
        content = dump_document(document)
        temp_name = None
        try:
            handle = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="\n",
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            )
            temp_name = handle.name
            with handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self.path)
        except OSError as e:
            raise DocumentError(self.path, f"cannot write: {e}", e)
        finally:
            if temp_name and os.path.exists(temp_name):
                try:
                    os.remove(temp_name)
                except OSError:
                    pass
