from __future__ import annotations

import json
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass
from typing import Any


class PdfExtractionError(RuntimeError):
    pass


@dataclass(frozen=True)
class PdfExtractionClient:
    """Forwards an uploaded order PDF to the extraction service (``POST /extract``)."""

    base_url: str = "http://localhost:5001"
    timeout_seconds: int = 60

    def _multipart(self, filename: str, content: bytes, fields: dict[str, str]) -> tuple[bytes, str]:
        boundary = uuid.uuid4().hex
        parts: list[bytes] = []
        for name, value in fields.items():
            parts.append(
                f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n{value}\r\n'.encode("utf-8")
            )
        parts.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="file"; filename="{filename}"\r\n'
                "Content-Type: application/pdf\r\n\r\n"
            ).encode("utf-8")
        )
        parts.append(content)
        parts.append(f"\r\n--{boundary}--\r\n".encode("utf-8"))
        return b"".join(parts), f"multipart/form-data; boundary={boundary}"

    def extract(self, filename: str, content: bytes, *, manufacturer_list: str | None = None) -> dict[str, Any]:
        fields = {"manufacturer_list": manufacturer_list} if manufacturer_list else {}
        body, content_type = self._multipart(filename or "upload.pdf", content, fields)

        req = urllib.request.Request(self.base_url.rstrip("/") + "/extract", data=body, method="POST")
        req.add_header("Content-Type", content_type)
        req.add_header("Accept", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                detail = json.loads(e.read().decode("utf-8", errors="ignore")).get("error")
            except (ValueError, AttributeError):
                detail = None
            raise PdfExtractionError(detail or "PDF extraction failed") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise PdfExtractionError(f"Error processing PDF: {e}") from e

        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise PdfExtractionError("Cannot read PDF. The PDF may be image-based or corrupted.") from e
        if not isinstance(data, dict):
            raise PdfExtractionError("Invalid response from PDF extraction service")
        return data
