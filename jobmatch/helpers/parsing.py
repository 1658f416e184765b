import re
import logging
from io import BytesIO
from pathlib import PurePath
from pdfminer.high_level import extract_text as pdf_extract
from docx import Document
from unstructured.partition.auto import partition
from jobmatch.utils.exceptions import UnsupportedFormat, ExtractionFailed
from jobmatch.utils.logging_config import get_logger
logging.getLogger("pdfminer").setLevel(logging.ERROR)

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = ("pdf", "docx", "txt")

def file_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower().lstrip(".")

def supported_extension(filename: str) -> str:
    """Return the lowercase extension or raise UnsupportedFormat."""
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormat(f"Unsupported file format: {ext or '<none>'}", extension=ext)
    return ext

def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")

def read_docx(data: bytes) -> str:
    doc = Document(BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])

def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(BytesIO(data))
    except Exception as first:
        logger.warning(f"pdfminer failed ({first}); trying unstructured")
        try:
            elems = partition(file=BytesIO(data), content_type="application/pdf")
        except Exception:
            raise first
        return "\n".join([e.text for e in elems if getattr(e, "text", None)])

def clean_text(x: str) -> str:
    x = re.sub(r"[ \t]+", " ", x)
    x = re.sub(r"\n\s*\n\s*\n+", "\n\n", x)
    return x.strip()

_READERS = {
    "pdf": read_pdf,
    "docx": read_docx,
    "txt": read_txt,
}

def extract_text(file_bytes: bytes, filename: str) -> str:
    """Decode an uploaded résumé into plain text, dispatching on extension."""
    ext = supported_extension(filename)
    reader = _READERS[ext]
    try:
        text = reader(file_bytes)
    except Exception as e:
        logger.error(f"Text extraction failed for {filename}: {e}")
        raise ExtractionFailed(
            f"Could not extract text from {ext} document: {e}",
            filename=filename,
            cause=e,
        ) from e
    return clean_text(text or "")
