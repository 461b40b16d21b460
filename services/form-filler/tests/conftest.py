"""Shared test fixtures for form filler tests."""

import sys
from pathlib import Path

import fitz
import numpy as np
import pandas as pd
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


def make_pdf(*page_texts: str) -> bytes:
    """Build a PDF with one page per text, drawn as a native text layer."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def add_widget(page: fitz.Page, name: str, field_type: int, rect: tuple, value=None) -> None:
    widget = fitz.Widget()
    widget.field_name = name
    widget.field_type = field_type
    widget.rect = fitz.Rect(*rect)
    if value is not None:
        widget.field_value = value
    page.add_widget(widget)


def responses_envelope(text: str) -> dict:
    """Minimal OpenAI Responses API body carrying one answer text."""
    return {
        "id": "resp_test",
        "object": "response",
        "output": [
            {"type": "reasoning", "summary": []},
            {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            },
        ],
    }


@pytest.fixture
def template_pdf_bytes() -> bytes:
    """Fillable template: text fields `name` and `notes`, checkbox `agree`."""
    doc = fitz.open()
    page = doc.new_page()
    add_widget(page, "name", fitz.PDF_WIDGET_TYPE_TEXT, (72, 100, 372, 124), "")
    add_widget(page, "notes", fitz.PDF_WIDGET_TYPE_TEXT, (72, 140, 372, 164), "")
    add_widget(page, "agree", fitz.PDF_WIDGET_TYPE_CHECKBOX, (72, 180, 90, 198), False)
    data = doc.tobytes()
    doc.close()
    return data


def _set_export_value(doc: fitz.Document, xref: int, export: str) -> None:
    """Rename a radio button's on-state appearance from Yes to its export value."""
    kind, value = doc.xref_get_key(xref, "AP/N")
    if kind == "xref":
        target = int(value.split()[0])
        for key in doc.xref_get_keys(target):
            if key != "Off":
                _, state_value = doc.xref_get_key(target, key)
                doc.xref_set_key(target, export, state_value)
                doc.xref_set_key(target, key, "null")
    else:
        doc.xref_set_key(xref, "AP/N", value.replace("/Yes", f"/{export}"))
    doc.xref_set_key(xref, "AS", "/Off")
    doc.xref_set_key(xref, "V", "/Off")


@pytest.fixture
def radio_template_pdf_bytes() -> bytes:
    """Template with text field `name` and radio group `colour` (exports Red, Blue)."""
    doc = fitz.open()
    page = doc.new_page()
    add_widget(page, "name", fitz.PDF_WIDGET_TYPE_TEXT, (72, 100, 372, 124), "")
    add_widget(page, "colour", fitz.PDF_WIDGET_TYPE_RADIOBUTTON, (72, 140, 90, 158), True)
    add_widget(page, "colour", fitz.PDF_WIDGET_TYPE_RADIOBUTTON, (100, 140, 118, 158), True)

    radios = [w.xref for w in page.widgets() if w.field_type == fitz.PDF_WIDGET_TYPE_RADIOBUTTON]
    for xref, export in zip(radios, ["Red", "Blue"]):
        _set_export_value(doc, xref, export)

    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def template_path(tmp_path: Path, template_pdf_bytes: bytes) -> Path:
    path = tmp_path / "template.pdf"
    path.write_bytes(template_pdf_bytes)
    return path


@pytest.fixture
def schema_path(tmp_path: Path) -> Path:
    """Schema spreadsheet in the authored column layout."""
    path = tmp_path / "schema.xlsx"
    pd.DataFrame(
        {
            "Field Name": ["Company Name", "Agreement Signed"],
            "Mapping Key": ["name", "agree"],
            "Instructions": ["Legal name of the company", "true if the agreement is signed"],
        }
    ).to_excel(path, index=False)
    return path


@pytest.fixture
def long_text_pdf_bytes() -> bytes:
    return make_pdf("Invoice 2024-117 issued to Acme Corp, 12 Harbour Road, Portsmouth.")


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate a minimal PNG page with text-like strokes."""
    import cv2

    img = np.full((300, 400, 3), 245, dtype=np.uint8)
    cv2.rectangle(img, (20, 30), (380, 45), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 70), (300, 85), (30, 30, 30), -1)
    cv2.putText(img, "ACME", (20, 150), cv2.FONT_HERSHEY_SIMPLEX, 1.5, (0, 0, 0), 3)

    _, buf = cv2.imencode(".png", img)
    return buf.tobytes()


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-image bytes for testing graceful degradation."""
    return b"this is not an image file at all"
