import logging
import os
import uuid
from typing import Optional

from fastapi import UploadFile

from hrms.core.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png", ".doc", ".docx"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class LocalDocumentStore:
    """
    Keeps leave supporting documents on local disk.

    The leave engine only stores the returned path and later exposes it as a
    URL; file contents are never inspected.
    """

    def __init__(self, upload_dir: str, url_path: str):
        self.upload_dir = upload_dir
        self.url_path = url_path.rstrip("/")

    def validate(self, upload: UploadFile) -> str:
        ext = os.path.splitext(upload.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationFailed(
                f"File type {ext or 'unknown'} not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
                field="document",
            )
        return ext

    async def save(self, upload: UploadFile) -> str:
        ext = self.validate(upload)
        content = await upload.read()
        if len(content) > MAX_FILE_SIZE:
            raise ValidationFailed(f"File size exceeds {MAX_FILE_SIZE // (1024 * 1024)}MB limit", field="document")

        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, f"{uuid.uuid4().hex}{ext}")
        with open(path, "wb") as f:
            f.write(content)
        logger.info(f"Stored leave document {path} ({len(content)} bytes)")
        return path

    def discard(self, path: Optional[str]) -> None:
        """Remove a stored file whose application was not filed."""
        if path and os.path.exists(path):
            os.remove(path)

    def url_for(self, path: Optional[str], base_url: str = "") -> Optional[str]:
        if not path:
            return None
        filename = os.path.basename(path.replace("\\", "/"))
        return f"{base_url.rstrip('/')}{self.url_path}/{filename}"
