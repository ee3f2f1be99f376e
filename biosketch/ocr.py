import os, time, warnings
from typing import List, Optional

from PIL import Image
import pytesseract
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

from .contracts import OcrResult

# Tesseract on PATH unless overridden
pytesseract.pytesseract.tesseract_cmd = os.getenv("TESSERACT_CMD", pytesseract.pytesseract.tesseract_cmd)

MAX_PAGES = 10
DPI = 300


# ---------- helpers ----------
def _mean_conf(conf):
    return (sum(conf)/len(conf)) if conf else 0.0

def _build_cfg(psm: int) -> str:
    tessdir = os.environ.get("TESSDATA_PREFIX")
    base = f"--oem 3 --psm {psm} -c preserve_interword_spaces=1"
    return (f'--tessdata-dir "{tessdir}" ' + base) if tessdir else base


def _run_tess(im: Image.Image, lang: str, cfg: str):
    txt = pytesseract.image_to_string(im, lang=lang, config=cfg)
    data = pytesseract.image_to_data(im, output_type=pytesseract.Output.DICT, lang=lang, config=cfg)
    conf = [float(c) for c in data.get("conf", []) if str(c) != "-1"]
    return txt, conf


def ocr_enabled() -> bool:
    return os.getenv("BIOSKETCH_OCR", "1").lower() not in {"0", "false", "no"}


# ---------- PDF OCR ----------
def rasterize_pdf(data: bytes, max_pages: int = MAX_PAGES) -> Optional[List[Image.Image]]:
    try:
        return convert_from_bytes(data, dpi=DPI, grayscale=True, first_page=1, last_page=max_pages)
    except PDFInfoNotInstalledError:
        warnings.warn("poppler (pdftoppm/pdfinfo) not found; OCR fallback skipped.", RuntimeWarning)
    except (PDFPageCountError, PDFSyntaxError) as exc:
        warnings.warn(f"PDF could not be rasterized for OCR: {exc}", RuntimeWarning)
    return None


def ocr_pdf(data: bytes, max_pages: int = MAX_PAGES) -> Optional[OcrResult]:
    """OCR a scanned PDF page by page. None when rasterizing or Tesseract is unavailable."""
    t0 = time.time()
    images = rasterize_pdf(data, max_pages)
    if images is None:
        return None
    lang = os.getenv("BIOSKETCH_OCR_LANG", "eng")
    psm = int(os.getenv("BIOSKETCH_OCR_PSM", "4"))
    cfg = _build_cfg(psm)

    texts: List[str] = []
    confidences: List[float] = []
    for index, im in enumerate(images):
        try:
            txt, conf = _run_tess(im, lang, cfg)
        except pytesseract.TesseractNotFoundError:
            warnings.warn("tesseract binary not found; set TESSERACT_CMD.", RuntimeWarning)
            return None
        except pytesseract.TesseractError as exc:
            warnings.warn(f"OCR failed on page {index + 1}: {exc}", RuntimeWarning)
            continue
        texts.append(txt.strip())
        confidences.extend(conf)

    meta = {
        "engine": "tesseract",
        "t_ms": int((time.time() - t0) * 1000),
        "params": {"oem": 3, "psm": psm, "lang": lang, "dpi": DPI},
        "pages": len(images),
        "char_conf_mean": float(_mean_conf(confidences)),
    }
    return OcrResult(text="\n\n".join(t for t in texts if t), confidences=confidences, meta=meta)
