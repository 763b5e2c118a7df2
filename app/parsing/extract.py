from __future__ import annotations

import hashlib
import logging
from io import BytesIO
from typing import Protocol

import httpx
from docx import Document
from pydantic import BaseModel, Field
from pypdf import PdfReader

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_PDF_MAGIC = b"%PDF"


class ResumeTextExtractionError(RuntimeError):
    status_code = 422


class ExtractedDocument(BaseModel):
    doc_id: str
    source_type: str
    text: str
    parsing_warnings: list[str] = Field(default_factory=list)


class ResumeTextExtractor(Protocol):
    def __call__(self, resume_url: str) -> str: ...


def _compute_doc_id(text: str, seed: str) -> str:
    digest = hashlib.sha256((text if text.strip() else seed).encode("utf-8", errors="ignore")).hexdigest()
    return digest[:16]


def _parse_pdf(data: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        reader = PdfReader(BytesIO(data))
        parts = [(page.extract_text() or "").strip() for page in reader.pages]
    except Exception as exc:  # noqa: BLE001
        warnings.append(f"PDF parsing failed: {exc}")
        return "", warnings
    text = "\n".join(part for part in parts if part)
    if not text:
        warnings.append("No extractable text found in PDF.")
    return text, warnings


def _parse_docx(data: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        document = Document(BytesIO(data))
    except Exception as exc:  # noqa: BLE001
        warnings.append(f"DOCX parsing failed: {exc}")
        return "", warnings
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    if not paragraphs:
        warnings.append("No extractable text found in DOCX.")
    return "\n".join(paragraphs), warnings


def extract_text_from_bytes(data: bytes, *, source: str = "") -> ExtractedDocument:
    """Best-effort text from a resume payload; unreadable files yield empty text plus warnings."""
    if data.startswith(_PDF_MAGIC):
        source_type = "pdf"
        text, warnings = _parse_pdf(data)
    elif data.startswith(_ZIP_MAGIC):
        source_type = "docx"
        text, warnings = _parse_docx(data)
    else:
        source_type = "txt"
        text, warnings = data.decode("utf-8", errors="replace"), []
    return ExtractedDocument(
        doc_id=_compute_doc_id(text, source),
        source_type=source_type,
        text=text,
        parsing_warnings=warnings,
    )


class HttpResumeTextExtractor:
    """Downloads a stored resume and extracts its text."""

    def __init__(self, *, timeout_s: float = 20.0, max_bytes: int = 10 * 1024 * 1024):
        self._timeout_s = timeout_s
        self._max_bytes = max_bytes

    def _too_large(self, resume_url: str) -> ResumeTextExtractionError:
        return ResumeTextExtractionError(f"Resume at '{resume_url}' exceeds {self._max_bytes} bytes.")

    def fetch(self, resume_url: str) -> bytes:
        """Download at most ``max_bytes``; larger bodies are abandoned mid-stream."""
        chunks: list[bytes] = []
        received = 0
        try:
            with httpx.Client(timeout=self._timeout_s, follow_redirects=True) as client:
                with client.stream("GET", resume_url) as response:
                    response.raise_for_status()
                    declared = response.headers.get("Content-Length")
                    if declared and declared.isdigit() and int(declared) > self._max_bytes:
                        raise self._too_large(resume_url)
                    for chunk in response.iter_bytes():
                        received += len(chunk)
                        if received > self._max_bytes:
                            raise self._too_large(resume_url)
                        chunks.append(chunk)
        except httpx.HTTPError as exc:
            raise ResumeTextExtractionError(f"Failed to download resume from '{resume_url}': {exc}") from exc
        return b"".join(chunks)

    def __call__(self, resume_url: str) -> str:
        document = extract_text_from_bytes(self.fetch(resume_url), source=resume_url)
        for warning in document.parsing_warnings:
            logger.warning("resume_extraction_warning doc_id=%s url=%s: %s", document.doc_id, resume_url, warning)
        return document.text
