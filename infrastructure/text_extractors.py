# infrastructure/text_extractors.py
"""Plain-text extraction from patent documents (PDF via PyMuPDF, .txt as-is)"""
import asyncio
import logging
import os

import fitz  # PyMuPDF

from config import settings
from core.exceptions import ExtractionError
from core.interfaces import ITextExtractor
from utils.common import normalize_whitespace

logger = logging.getLogger(settings.LOGGER_NAME)

TEXT_EXTENSIONS = {".txt", ".text"}


class PyMuPDFTextExtractor(ITextExtractor):
    """
    Reads every page's text layer and collapses whitespace to single spaces.

    Parsing is blocking, so it runs in a worker thread.
    """

    async def extract(self, file_path: str) -> str:
        if not os.path.isfile(file_path):
            raise ExtractionError("Document not found", {"path": file_path})

        ext = os.path.splitext(file_path)[1].lower()
        reader = self._read_text_file if ext in TEXT_EXTENSIONS else self._read_pdf

        try:
            raw = await asyncio.to_thread(reader, file_path)
        except ExtractionError:
            raise
        except (RuntimeError, ValueError, OSError) as e:
            logger.error(f"[EXTRACT] Failed to read {file_path}: {e}")
            raise ExtractionError(f"Could not extract text: {e}", {"path": file_path}) from e

        text = normalize_whitespace(raw)
        logger.info(f"[EXTRACT] {os.path.basename(file_path)}: {len(text)} characters")
        return text

    @staticmethod
    def _read_pdf(file_path: str) -> str:
        with fitz.open(file_path) as doc:
            if doc.is_encrypted:
                raise ExtractionError("Document is encrypted", {"path": file_path})
            return " ".join(page.get_text() for page in doc)

    @staticmethod
    def _read_text_file(file_path: str) -> str:
        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()
