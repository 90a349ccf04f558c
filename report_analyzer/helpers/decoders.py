from pathlib import Path

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from report_analyzer.commons.errors import DecodeFailed
from report_analyzer.commons.logger import logger

PDF_EXTENSIONS = {".pdf"}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp"}

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".bmp": "image/bmp",
}


def detect_kind(path: str) -> str:
    """Return 'PDF', 'IMAGE' or '' (unsupported)."""
    ext = Path(path).suffix.lower()
    if ext in PDF_EXTENSIONS:
        return "PDF"
    if ext in IMAGE_EXTENSIONS:
        return "IMAGE"
    return ""


def guess_mime(path: str):
    return MIME_TYPES.get(Path(path).suffix.lower())


class TextDecoder:
    def __init__(self, ocr_lang: str = "eng"):
        self.ocr_lang = ocr_lang

    def _pdf_text(self, path: str) -> str:
        with fitz.open(path) as doc:
            return "\n".join(page.get_text("text") or "" for page in doc)

    def _image_text(self, path: str) -> str:
        with Image.open(path) as img:
            return pytesseract.image_to_string(img, lang=self.ocr_lang)

    def decode(self, path: str) -> str:
        """PDF -> capa de texto; imagen -> OCR. Cualquier fallo -> DecodeFailed."""
        kind = detect_kind(path)
        if not kind:
            raise DecodeFailed(path, f"formato no soportado ({Path(path).suffix or 'sin extensión'})")
        if not Path(path).is_file():
            raise DecodeFailed(path, "el archivo no existe")
        try:
            text = self._pdf_text(path) if kind == "PDF" else self._image_text(path)
        except Exception as ex:
            raise DecodeFailed(path, str(ex)) from ex
        logger.debug(f"Decodificado {path} ({kind}): {len(text)} caracteres")
        return text
