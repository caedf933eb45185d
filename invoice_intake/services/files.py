"""
Local storage of uploaded invoice documents.
"""

import uuid
from pathlib import Path
from loguru import logger


class LocalFileStore:
    """
    Writes uploads under ``uploads_dir`` with a random name that keeps the
    original extension, and returns the public path ("/uploads/<file>").
    """

    def __init__(self, uploads_dir: str = "uploads", public_prefix: str = "/uploads"):
        self.uploads_dir = Path(uploads_dir)
        self.public_prefix = public_prefix.rstrip("/")

    def store(self, data: bytes, name: str) -> str:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

        filename = f"{uuid.uuid4()}{Path(name or '').suffix.lower()}"
        (self.uploads_dir / filename).write_bytes(data)

        logger.info("Stored uploaded document", original_name=name, stored_as=filename, size_bytes=len(data))
        return f"{self.public_prefix}/{filename}"
