"""Best-effort filling of a fillable PDF template.

Widget types are probed from the template up front and each mapping key is
dispatched on its declared kind. When a key names widgets of several kinds,
kinds are tried in FILL_PRIORITY order and the first success wins. A key that
cannot be filled is recorded as unfilled; it never fails the request, since
schema and template evolve independently.
"""

import logging
from collections.abc import Callable, Iterable, Mapping

import fitz

from errors import AssetLoadError, FormStateError
from models import ExtractedValue, FieldKind, FieldRef, FillOutcome, FillReport

logger = logging.getLogger(__name__)

FILL_PRIORITY: tuple[FieldKind, ...] = (FieldKind.TEXT, FieldKind.CHECKBOX, FieldKind.RADIO)

TRUTHY = {"true", "yes", "checked", "1"}

WIDGET_KINDS: dict[int, FieldKind] = {
    fitz.PDF_WIDGET_TYPE_TEXT: FieldKind.TEXT,
    fitz.PDF_WIDGET_TYPE_CHECKBOX: FieldKind.CHECKBOX,
    fitz.PDF_WIDGET_TYPE_RADIOBUTTON: FieldKind.RADIO,
}


class FormDocument:
    """A fillable PDF held in memory until it is flattened."""

    def __init__(self, doc: fitz.Document):
        self.doc = doc
        self.flattened = False
        # Loaded pages stay referenced while their widgets are being updated
        self._pages: dict[int, fitz.Page] = {}

    @classmethod
    def open(cls, template_bytes: bytes) -> "FormDocument":
        try:
            doc = fitz.open(stream=template_bytes, filetype="pdf")
        except Exception as e:
            raise AssetLoadError(f"Cannot open template PDF: {e}") from e
        if not doc.is_form_pdf:
            logger.warning("Template has no form fields; every key will be unfilled")
        return cls(doc)

    def probe(self) -> dict[str, list[FieldRef]]:
        """Map each field name to its widgets and their declared kinds."""
        index: dict[str, list[FieldRef]] = {}
        for page in self.doc:
            for widget in page.widgets():
                kind = WIDGET_KINDS.get(widget.field_type, FieldKind.UNKNOWN)
                index.setdefault(widget.field_name, []).append(
                    FieldRef(name=widget.field_name, kind=kind, page_number=page.number, xref=widget.xref)
                )
        logger.info("Probed template: %d field(s)", len(index))
        return index

    def load_widget(self, ref: FieldRef) -> fitz.Widget:
        page = self._pages.get(ref.page_number)
        if page is None:
            page = self._pages[ref.page_number] = self.doc[ref.page_number]
        return page.load_widget(ref.xref)

    def close(self) -> None:
        self._pages.clear()
        self.doc.close()


def as_text(value: ExtractedValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def fill_text(widgets: Iterable[fitz.Widget], value: ExtractedValue) -> None:
    for widget in widgets:
        widget.field_value = as_text(value)
        widget.update()


def fill_checkbox(widgets: Iterable[fitz.Widget], value: ExtractedValue) -> None:
    checked = as_text(value).strip().lower() in TRUTHY
    for widget in widgets:
        widget.field_value = checked
        widget.update()


def fill_radio(widgets: Iterable[fitz.Widget], value: ExtractedValue) -> None:
    """Select the button whose export value equals the value exactly."""
    widgets = list(widgets)
    target = as_text(value)
    selected = next((w for w in widgets if w.on_state() == target), None)
    if selected is None:
        raise ValueError("no matching option in radio group")

    for widget in widgets:
        if widget is not selected:
            widget.field_value = False
            widget.update()
    selected.field_value = True
    selected.update()


STRATEGIES: dict[FieldKind, Callable[[Iterable[fitz.Widget], ExtractedValue], None]] = {
    FieldKind.TEXT: fill_text,
    FieldKind.CHECKBOX: fill_checkbox,
    FieldKind.RADIO: fill_radio,
}


def fill_form(form: FormDocument, values: Mapping[str, ExtractedValue]) -> FillReport:
    """Write every value into the form; each key ends Filled or Unfilled."""
    if form.flattened:
        raise FormStateError("Cannot fill a flattened form")

    index = form.probe()
    outcomes = [_fill_key(form, key, value, index.get(key, [])) for key, value in values.items()]
    report = FillReport(outcomes=outcomes)

    logger.info("Filled %d of %d key(s)", len(report.filled), len(outcomes))
    if report.unfilled:
        logger.info("Unfilled keys: %s", ", ".join(report.unfilled))
    return report


def _fill_key(form: FormDocument, key: str, value: ExtractedValue, refs: list[FieldRef]) -> FillOutcome:
    errors: list[str] = []

    for kind in FILL_PRIORITY:
        kind_refs = [ref for ref in refs if ref.kind is kind]
        if not kind_refs:
            continue
        try:
            STRATEGIES[kind]([form.load_widget(ref) for ref in kind_refs], value)
        except Exception as e:
            # Exception text can echo the value; log the type only
            logger.warning("Filling %s as %s failed: %s", key, kind.value, type(e).__name__)
            errors.append(f"{kind.value}: {e}")
            continue
        return FillOutcome(mapping_key=key, filled=True, strategy=kind.value)

    if errors:
        reason = "; ".join(errors)
    elif refs:
        reason = "unsupported field type"
    else:
        reason = "no matching field in template"
    return FillOutcome(mapping_key=key, filled=False, strategy="none", error=reason)
