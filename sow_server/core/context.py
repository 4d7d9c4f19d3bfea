"""Context assembly: project record plus uploaded-document text for prompts.

Every uploaded document contributes at most ``per_document_cap`` bytes of
extracted text, keeping the head of the document. Binary files that cannot
be read as text are skipped, and a document that fails to fetch or parse
is left out without aborting assembly. ``total_cap`` optionally bounds the
whole block; it is disabled by default.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Sequence

from docx import Document
from openpyxl import load_workbook
from PyPDF2 import PdfReader

from ..adapters.storage import StorageBackend
from ..db import models
from ..storage import project_storage_key
from .config import CONTEXT_DOC_BYTE_CAP, CONTEXT_TOTAL_BYTE_CAP

LOGGER = logging.getLogger(__name__)

# Formats that need the whole file before any text can be extracted
MAX_EXTRACT_BYTES = 20 * 1024 * 1024

_TEXT_LIKE_EXTENSIONS = {".txt", ".md", ".csv", ".json", ".vtt", ".yaml", ".yml", ".html", ".xml"}
_TEXT_MEDIA_TYPES = {"application/json", "application/xml", "application/x-yaml"}
_PDF_EXTENSIONS = {".pdf"}
_DOCX_EXTENSIONS = {".docx"}
_XLSX_EXTENSIONS = {".xlsx"}

TRUNCATION_MARKER = "[... truncated ...]"


class UnsupportedContent(ValueError):
    """Raised for documents with no extractable text."""


@dataclass
class ContextDocument:
    filename: str
    text: str
    truncated: bool = False


def truncate_utf8(text: str, max_bytes: int) -> tuple[str, bool]:
    """Keep the first ``max_bytes`` bytes of ``text`` without splitting a character."""

    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text, False
    return encoded[:max_bytes].decode("utf-8", errors="ignore"), True


def _decode_text(raw: bytes, *, partial: bool) -> str:
    if b"\x00" in raw:
        raise UnsupportedContent("binary content")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        # A byte-limited read can cut a multi-byte character at the very end
        if partial and exc.start >= len(raw) - 3:
            return raw[: exc.start].decode("utf-8")
        raise UnsupportedContent("content is not UTF-8 text") from exc


def _pdf_text(raw: bytes) -> str:
    reader = PdfReader(io.BytesIO(raw))
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    return "\n\n".join(page for page in pages if page)


def _docx_text(raw: bytes) -> str:
    doc = Document(io.BytesIO(raw))
    paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
    return "\n".join(paragraphs)


def _xlsx_text(raw: bytes, *, sheet_limit: int = 10, row_limit: int = 200, col_limit: int = 20) -> str:
    wb = load_workbook(filename=io.BytesIO(raw), data_only=True, read_only=True)
    lines: List[str] = []
    try:
        for si, sheet in enumerate(wb.worksheets[:sheet_limit], start=1):
            lines.append(f"--- Sheet {si}: {sheet.title} ---")
            for row in sheet.iter_rows(min_row=1, max_row=row_limit, max_col=col_limit, values_only=True):
                lines.append("\t".join("" if v is None else str(v) for v in row))
    finally:
        wb.close()
    return "\n".join(lines)


def _document_kind(filename: str, media_type: Optional[str]) -> str:
    suffix = PurePosixPath(filename).suffix.lower()
    media = (media_type or mimetypes.guess_type(filename)[0] or "").lower()
    if suffix in _PDF_EXTENSIONS or media == "application/pdf":
        return "pdf"
    if suffix in _DOCX_EXTENSIONS:
        return "docx"
    if suffix in _XLSX_EXTENSIONS:
        return "xlsx"
    if media.startswith(("image/", "audio/", "video/")):
        return "binary"
    if media.startswith("text/") or media in _TEXT_MEDIA_TYPES or suffix in _TEXT_LIKE_EXTENSIONS:
        return "text"
    # Unknown types are sniffed as text and skipped if they do not decode
    return "text"


class ContextAssembler:
    """Builds the bounded project context that prompts are grounded on."""

    def __init__(
        self,
        storage: StorageBackend,
        *,
        per_document_cap: int = CONTEXT_DOC_BYTE_CAP,
        total_cap: int = CONTEXT_TOTAL_BYTE_CAP,
    ) -> None:
        if per_document_cap <= 0:
            raise ValueError("per_document_cap must be positive")
        self._storage = storage
        self.per_document_cap = per_document_cap
        self.total_cap = max(total_cap, 0)

    def project_context(
        self,
        project: models.Project,
        files: Sequence[models.ProjectFile] = (),
    ) -> Dict[str, Any]:
        """Project identity and requirements in the shape the question prompt expects."""

        requirements = project.requirements or {}
        return {
            "projectName": project.name,
            "projectType": project.project_type,
            "description": requirements.get("description") or project.description or "",
            "budget": requirements.get("budget"),
            "timeline": requirements.get("timeline"),
            "propertyAddress": project.property_address or {},
            "documents": [record.filename for record in files],
        }

    def collect(
        self,
        project: models.Project,
        files: Iterable[models.ProjectFile],
    ) -> List[ContextDocument]:
        documents: List[ContextDocument] = []
        used = 0
        for record in files:
            document = self._load(project, record)
            if document is None:
                continue
            size = len(document.text.encode("utf-8"))
            if self.total_cap and used + size > self.total_cap:
                LOGGER.info(
                    "Context budget of %s bytes reached; omitting %s and later documents",
                    self.total_cap,
                    record.filename,
                )
                break
            used += size
            documents.append(document)
        return documents

    def assemble(
        self,
        project: models.Project,
        files: Iterable[models.ProjectFile],
    ) -> str:
        blocks = []
        for document in self.collect(project, files):
            block = f"### Document: {document.filename}\n{document.text}"
            if document.truncated:
                block = f"{block}\n{TRUNCATION_MARKER}"
            blocks.append(block)
        return "\n\n".join(blocks)

    def _load(self, project: models.Project, record: models.ProjectFile) -> Optional[ContextDocument]:
        kind = _document_kind(record.filename, record.media_type)
        if kind == "binary":
            LOGGER.info("Skipping binary document %s (%s)", record.filename, record.media_type)
            return None

        # Text can be read head-first; structured formats need the whole file
        limit = self.per_document_cap if kind == "text" else MAX_EXTRACT_BYTES
        try:
            key = project_storage_key(str(project.id), record.path)
            raw = self._storage.get_bytes(key, max_bytes=limit)
        except Exception as exc:
            LOGGER.warning("Omitting %s from context: fetch failed (%s)", record.filename, exc)
            return None

        try:
            if kind == "pdf":
                text = _pdf_text(raw)
            elif kind == "docx":
                text = _docx_text(raw)
            elif kind == "xlsx":
                text = _xlsx_text(raw)
            else:
                text = _decode_text(raw, partial=len(raw) >= limit)
        except UnsupportedContent as exc:
            LOGGER.info("Skipping %s: %s", record.filename, exc)
            return None
        except Exception as exc:
            LOGGER.warning("Omitting %s from context: extraction failed (%s)", record.filename, exc)
            return None

        text = text.strip()
        if not text:
            return None
        text, truncated = truncate_utf8(text, self.per_document_cap)
        # A text read that filled the limit was cut by the fetch itself
        truncated = truncated or (kind == "text" and len(raw) >= limit and record.size > limit)
        return ContextDocument(filename=record.filename, text=text, truncated=truncated)
