"""Extract plain text from uploaded documents (PDF, DOCX, TXT/MD, RTF)."""

import io
import re

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_RTF_CONTROL = re.compile(r"\\[a-z]+\d*\s?", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class UnsupportedFileType(ValueError):
    def __init__(self):
        super().__init__("Unsupported file type. Please upload PDF, DOCX, TXT, or MD files.")


def detect_kind(filename: str, mime_type: str) -> str:
    """Map a filename/MIME pair onto one of pdf | docx | text | rtf."""
    name = (filename or "").lower()
    mime = (mime_type or "").lower()
    if mime == "application/pdf" or name.endswith(".pdf"):
        return "pdf"
    if mime == DOCX_MIME or name.endswith(".docx"):
        return "docx"
    if mime == "text/plain" or name.endswith((".txt", ".md", ".markdown")):
        return "text"
    if mime == "text/rtf" or name.endswith(".rtf"):
        return "rtf"
    raise UnsupportedFileType()


def _extract_pdf(data: bytes) -> str:
    import pdfplumber

    parts = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    parts.append(page_text)
    except Exception as e:
        raise ValueError("Failed to extract text from PDF") from e
    return "\n".join(parts)


def _extract_docx(data: bytes) -> str:
    import docx

    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:
        raise ValueError("Failed to extract text from Word document") from e
    return "\n".join(p.text for p in document.paragraphs if p.text.strip())


def _extract_rtf(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    return _RTF_CONTROL.sub("", text).replace("{", "").replace("}", "")


def extract_text(data: bytes, filename: str, mime_type: str) -> str:
    """Return the document's text with all whitespace runs collapsed to one space."""
    kind = detect_kind(filename, mime_type)
    if kind == "pdf":
        text = _extract_pdf(data)
    elif kind == "docx":
        text = _extract_docx(data)
    elif kind == "rtf":
        text = _extract_rtf(data)
    else:
        text = data.decode("utf-8", errors="replace")
    return _WHITESPACE.sub(" ", text).strip()
