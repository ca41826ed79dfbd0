"""Text and image extraction for uploaded documents.

Dispatches on the lower-cased file extension. Parse failures never abort an
upload: text extraction degrades to a bracketed placeholder and image
extraction degrades to an empty list. Only a missing or unreadable file is
raised to the caller.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import docx2txt
import fitz  # PyMuPDF
import pandas as pd
import requests
from bs4 import BeautifulSoup
from pptx import Presentation

from docqa.constants import IMAGE_CONTEXT_MAX_LENGTH, get_image_fetch_timeout
from docqa.ingest.images import DEFAULT_IMAGE_MIME, encode_data_uri, is_data_uri, mime_type_for

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".pdf",
    ".docx",
    ".ppt",
    ".pptx",
    ".xlsx",
    ".xls",
    ".html",
    ".htm",
    ".txt",
    ".md",
}


@dataclass
class ExtractedImage:
    """An image found inside a document.

    Attributes:
        data: The image as data:<mime>;base64,<payload>
        context: Text describing where the image came from
    """

    data: str
    context: str


@dataclass
class ExtractionResult:
    """Text and images extracted from one file.

    Attributes:
        text: Full extracted text (may be a placeholder on parse errors)
        images: Extracted images in document order
        pages: Per-page texts for paginated formats (PDF), else empty
    """

    text: str
    images: list[ExtractedImage] = field(default_factory=list)
    pages: list[str] = field(default_factory=list)


# =============================================================================
# Text extraction
# =============================================================================
def extract_pdf_pages(path: Path) -> list[str]:
    """Extract the text layer of a PDF, one string per page."""
    doc = fitz.open(path)
    try:
        return [page.get_text() for page in doc]
    finally:
        doc.close()


def extract_docx_text(path: Path) -> str:
    return docx2txt.process(str(path)) or ""


def extract_pptx_text(path: Path, name: str) -> str:
    """Extract slide text from a PowerPoint file.

    Returns:
        str: Slide text, or a PowerPoint-specific placeholder when the file
             cannot be parsed or contains no text
    """
    try:
        presentation = Presentation(str(path))
    except Exception as e:
        logger.error(f"❌ Error parsing PowerPoint {name}: {e}")
        return f"[Error extracting text from PowerPoint: {name}]"

    lines: list[str] = []
    for slide in presentation.slides:
        for shape in slide.shapes:
            if shape.has_text_frame:
                for paragraph in shape.text_frame.paragraphs:
                    text = "".join(run.text for run in paragraph.runs).strip()
                    if text:
                        lines.append(text)
            if getattr(shape, "has_table", False) and shape.has_table:
                for row in shape.table.rows:
                    cells = [cell.text.strip() for cell in row.cells]
                    if any(cells):
                        lines.append("\t".join(cells))

    text = "\n".join(lines)
    if not text.strip():
        return f"[No text content found in PowerPoint: {name}]"
    return text


def extract_spreadsheet_text(path: Path) -> str:
    """Convert every sheet to tab-delimited text, sheets separated by a blank line."""
    sheets = pd.read_excel(path, sheet_name=None, header=None)
    texts = []
    for frame in sheets.values():
        frame = frame.fillna("")
        rows = ["\t".join(str(value) for value in row) for row in frame.itertuples(index=False)]
        texts.append("\n".join(rows))
    return "\n\n".join(texts)


def extract_html_text(html: str) -> str:
    """Strip markup and collapse whitespace."""
    soup = BeautifulSoup(html, "html.parser")
    return " ".join(soup.get_text(separator=" ").split())


def read_text_file(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


# =============================================================================
# Image extraction
# =============================================================================
def extract_zip_media(path: Path, prefix: str, label: str) -> list[ExtractedImage]:
    """Read every archive entry under a media prefix as a data URI.

    DOCX and PPTX files are zip archives that keep embedded pictures under
    word/media/ and ppt/media/ respectively. Each image's context is the
    label followed by the media entry's file name.
    """
    images = []
    with zipfile.ZipFile(path) as archive:
        for entry in archive.namelist():
            if not entry.startswith(prefix) or entry.endswith("/"):
                continue
            data = archive.read(entry)
            context = f"{label}: {PurePosixPath(entry).name}"
            images.append(ExtractedImage(encode_data_uri(data, mime_type_for(entry)), context))
    return images


def resolve_image_source(src: str, base_dir: Path, timeout: float | None = None) -> str:
    """Turn an <img src> value into a data URI.

    Args:
        src: Inline data URI, http(s) URL, or path relative to base_dir
        base_dir: Directory of the HTML file
        timeout: Download timeout for remote images

    Returns:
        str: The image as a data URI

    Raises:
        requests.RequestException: If a remote image cannot be fetched
        OSError: If a local image cannot be read
        ValueError: If a local path points outside base_dir
    """
    if is_data_uri(src):
        return src

    if src.startswith(("http://", "https://")):
        response = requests.get(src, timeout=timeout or get_image_fetch_timeout())
        response.raise_for_status()
        mime_type = response.headers.get("Content-Type", DEFAULT_IMAGE_MIME).split(";")[0].strip()
        return encode_data_uri(response.content, mime_type or DEFAULT_IMAGE_MIME)

    root = base_dir.resolve()
    image_path = (root / src).resolve()
    if not image_path.is_relative_to(root):
        raise ValueError(f"Image path {src} is outside {root}")
    return encode_data_uri(image_path.read_bytes(), mime_type_for(image_path.name))


def extract_html_images(html: str, base_dir: Path) -> list[ExtractedImage]:
    """Collect <img> elements with their alt/title text and surrounding text."""
    soup = BeautifulSoup(html, "html.parser")
    images = []
    for img in soup.find_all("img"):
        src = img.get("src")
        if not src:
            continue
        try:
            data = resolve_image_source(src, base_dir)
        except Exception as e:
            logger.warning(f"⚠️  Skipping image {src}: {e}")
            continue

        alt = img.get("alt", "")
        title = img.get("title", "")
        nearby = img.parent.get_text(" ", strip=True) if img.parent else ""
        context = f"Image: {alt} {title}. Context: {nearby}".strip()[:IMAGE_CONTEXT_MAX_LENGTH]
        images.append(ExtractedImage(data, context))
    return images


def extract_images(path: Path, ext: str, name: str) -> list[ExtractedImage]:
    """Extract images for formats that carry them. Errors yield an empty list."""
    try:
        if ext == ".docx":
            return extract_zip_media(path, "word/media/", "Image from DOCX document")
        if ext in (".ppt", ".pptx"):
            return extract_zip_media(path, "ppt/media/", "Slide image from PowerPoint")
        if ext in (".html", ".htm"):
            return extract_html_images(read_text_file(path), path.parent)
        if ext == ".pdf":
            logger.info(f"📸 PDF image extraction is not supported, skipping images in {name}")
    except Exception as e:
        logger.error(f"❌ Error extracting images from {name}: {e}")
    return []


# =============================================================================
# Entry point
# =============================================================================
def extract(path: Path | str, original_filename: str | None = None) -> ExtractionResult:
    """Extract text and images from a file.

    Args:
        path: Path of the stored file
        original_filename: Name the file was uploaded with; selects the parser
                           and is used in placeholders (default: path name)

    Returns:
        ExtractionResult: Extracted text, images and, for PDFs, per-page text

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    name = original_filename or path.name
    ext = Path(name).suffix.lower()

    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    if ext not in SUPPORTED_EXTENSIONS:
        logger.info(f"Unsupported file type {ext or '(none)'} for {name}, no text extracted")
        return ExtractionResult(text="")

    pages: list[str] = []
    try:
        if ext == ".pdf":
            pages = extract_pdf_pages(path)
            text = "".join(pages)
        elif ext == ".docx":
            text = extract_docx_text(path)
        elif ext in (".ppt", ".pptx"):
            text = extract_pptx_text(path, name)
        elif ext in (".xlsx", ".xls"):
            text = extract_spreadsheet_text(path)
        elif ext in (".html", ".htm"):
            text = extract_html_text(read_text_file(path))
        else:
            text = read_text_file(path)
    except Exception as e:
        logger.error(f"❌ Error parsing file {name}: {e}")
        text = f"[Error parsing file: {name}]"
        pages = []

    images = extract_images(path, ext, name)
    logger.info(f"✅ Extracted {len(text)} characters and {len(images)} images from {name}")
    return ExtractionResult(text=text, images=images, pages=pages)
