"""
Text extraction for uploaded scripts and parsing of budget CSV files.
"""

import io
import os
import csv
import math
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError
from docx import Document

import config
from exceptions import UnsupportedFileError
from production_manager import parse_decimal

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".fountain", ".md")

# Accepted CSV headers for each budget column, lower-cased
BUDGET_HEADER_ALIASES = {
    "item_name": ("item_name", "item", "name", "description item"),
    "category": ("category", "categoria"),
    "description": ("description", "descricao", "descrição"),
    "subcategory": ("subcategory", "subcategoria"),
    "quantity": ("quantity", "qty", "quantidade"),
    "unit": ("unit", "unidade"),
    "unit_price": ("unit_price", "unit price", "price", "valor unitario", "valor unitário"),
    "supplier": ("supplier", "fornecedor"),
    "contact": ("contact", "contato"),
    "status": ("status",),
    "payment_method": ("payment_method", "payment method"),
    "notes": ("notes", "observacoes", "observações"),
}


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except PdfReadError as e:
        raise UnsupportedFileError(f"Could not read PDF: {e}") from e


def _docx_text(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
    except Exception as e: # python-docx raises assorted zip/xml errors
        raise UnsupportedFileError(f"Could not read DOCX: {e}") from e
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def extract_script_text(filename: str, data: bytes) -> str:
    """Returns the plain text of an uploaded script.

    Supports .pdf, .docx and plain text (.txt, .fountain, .md).

    Raises:
        UnsupportedFileError: unknown extension, unreadable file, or no text.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension == ".pdf":
        text = _pdf_text(data)
    elif extension == ".docx":
        text = _docx_text(data)
    elif extension in TEXT_EXTENSIONS:
        text = _decode(data)
    else:
        raise UnsupportedFileError(f"Unsupported file type: '{extension or filename}'. Use PDF, DOCX or TXT.")

    text = text.strip()
    if not text:
        raise UnsupportedFileError(f"No text could be extracted from '{filename}'.")
    logger.info(f"Extracted {len(text)} chars from '{filename}'")
    return text


def script_stats(text: str) -> dict:
    text = text or ""
    return {
        "word_count": len(text.split()),
        "page_count": math.ceil(len(text) / config.CHARS_PER_PAGE),
    }


def _canonical_headers(fieldnames) -> dict:
    mapping = {}
    for header in fieldnames or []:
        key = (header or "").strip().lower()
        for column, aliases in BUDGET_HEADER_ALIASES.items():
            if key in aliases:
                mapping[header] = column
                break
    return mapping


def _parse_amount(value: str, line: int, column: str):
    if not (value or "").strip():
        return None
    try:
        return parse_decimal(value)
    except ValueError as e:
        raise ValueError(f"Line {line}: invalid {column} '{value}'") from e


def parse_budget_csv(data) -> list[dict]:
    """Parses budget rows from CSV bytes or text.

    Blank rows are skipped; a row without an item name raises ValueError
    naming its line.
    """
    text = _decode(data) if isinstance(data, bytes) else data
    header_line = text.lstrip().splitlines()[0] if text.strip() else ""
    # Spreadsheets in decimal-comma locales export with ";"
    delimiter = ";" if header_line.count(";") > header_line.count(",") else ","
    reader = csv.DictReader(io.StringIO(text.lstrip()), delimiter=delimiter)
    headers = _canonical_headers(reader.fieldnames)
    if "item_name" not in headers.values():
        raise ValueError("CSV needs an item name column (item_name, item or name).")

    items = []
    for row in reader:
        line = reader.line_num
        values = {headers[h]: (v or "").strip() for h, v in row.items() if h in headers and isinstance(v, str)}
        if not any(values.values()):
            continue
        if not values.get("item_name"):
            raise ValueError(f"Line {line}: missing item name")
        item = {k: v for k, v in values.items() if v and k not in ("quantity", "unit_price")}
        for column in ("quantity", "unit_price"):
            amount = _parse_amount(values.get(column), line, column)
            if amount is not None:
                item[column] = amount
        items.append(item)
    logger.info(f"Parsed {len(items)} budget rows from CSV")
    return items
