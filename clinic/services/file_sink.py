"""Local file storage for patient images and generated prescriptions.

Each sink owns one directory and one public URL prefix; the app mounts the
directory read-only at that prefix so the returned paths are fetchable.
"""
import time
import uuid
from pathlib import Path


def unique_name(original: str) -> str:
    """Timestamp + short random suffix + the sanitized base name of ``original``."""
    base = Path(original or "").name.replace(" ", "_") or "upload"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{base}"


class LocalFileSink:
    def __init__(self, root, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def save(self, data: bytes, filename: str) -> str:
        """Write ``data`` under ``filename`` and return its public path."""
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / filename).write_bytes(data)
        return f"{self.url_prefix}/{filename}"

    def path_for(self, public_path: str) -> Path:
        return self.root / Path(public_path).name
