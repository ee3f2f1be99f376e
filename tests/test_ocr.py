import pytest
import pytesseract
from pdf2image.exceptions import PDFInfoNotInstalledError
from PIL import Image

from biosketch import ocr


def _pages(n):
    return [Image.new("L", (20, 20)) for _ in range(n)]


def test_build_cfg_honors_tessdata_prefix(monkeypatch):
    monkeypatch.delenv("TESSDATA_PREFIX", raising=False)
    assert ocr._build_cfg(4) == "--oem 3 --psm 4 -c preserve_interword_spaces=1"
    monkeypatch.setenv("TESSDATA_PREFIX", "/opt/tessdata")
    assert ocr._build_cfg(6).startswith('--tessdata-dir "/opt/tessdata" --oem 3 --psm 6')


@pytest.mark.parametrize("value, enabled", [(None, True), ("1", True), ("0", False), ("false", False)])
def test_ocr_enabled(monkeypatch, value, enabled):
    if value is None:
        monkeypatch.delenv("BIOSKETCH_OCR", raising=False)
    else:
        monkeypatch.setenv("BIOSKETCH_OCR", value)
    assert ocr.ocr_enabled() is enabled


def test_ocr_pdf_joins_pages(monkeypatch):
    monkeypatch.setattr(ocr, "rasterize_pdf", lambda data, max_pages=ocr.MAX_PAGES: _pages(2))
    texts = iter([("Personal Statement\n", [80.0, 90.0]), ("Honors", [70.0])])
    seen = {}

    def fake_tess(im, lang, cfg):
        seen.update(lang=lang, cfg=cfg)
        return next(texts)

    monkeypatch.setattr(ocr, "_run_tess", fake_tess)
    monkeypatch.setenv("BIOSKETCH_OCR_LANG", "eng")
    monkeypatch.setenv("BIOSKETCH_OCR_PSM", "6")
    res = ocr.ocr_pdf(b"%PDF")
    assert res.text == "Personal Statement\n\nHonors"
    assert res.confidences == [80.0, 90.0, 70.0]
    assert res.meta["pages"] == 2
    assert res.meta["params"]["psm"] == 6
    assert res.meta["char_conf_mean"] == pytest.approx(80.0)
    assert "--psm 6" in seen["cfg"]


def test_ocr_pdf_skips_failed_pages(monkeypatch):
    monkeypatch.setattr(ocr, "rasterize_pdf", lambda data, max_pages=ocr.MAX_PAGES: _pages(2))
    results = iter([pytesseract.TesseractError(1, "bad page"), ("Honors", [60.0])])

    def fake_tess(im, lang, cfg):
        item = next(results)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(ocr, "_run_tess", fake_tess)
    with pytest.warns(RuntimeWarning, match="page 1"):
        res = ocr.ocr_pdf(b"%PDF")
    assert res.text == "Honors"


def test_ocr_pdf_without_tesseract(monkeypatch):
    monkeypatch.setattr(ocr, "rasterize_pdf", lambda data, max_pages=ocr.MAX_PAGES: _pages(1))

    def missing(im, lang, cfg):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(ocr, "_run_tess", missing)
    with pytest.warns(RuntimeWarning, match="tesseract"):
        assert ocr.ocr_pdf(b"%PDF") is None


def test_rasterize_without_poppler(monkeypatch):
    def no_poppler(*args, **kwargs):
        raise PDFInfoNotInstalledError("pdfinfo missing")

    monkeypatch.setattr(ocr, "convert_from_bytes", no_poppler)
    with pytest.warns(RuntimeWarning, match="poppler"):
        assert ocr.rasterize_pdf(b"%PDF") is None
    with pytest.warns(RuntimeWarning):
        assert ocr.ocr_pdf(b"%PDF") is None
