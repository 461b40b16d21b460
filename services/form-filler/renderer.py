"""Flatten the filled form and serialize the final PDF.

Flattening bakes every widget into static page content. It is irreversible
and runs once per form, strictly after filling has finished.
"""

import logging

from errors import RenderError
from form_filler import FormDocument

logger = logging.getLogger(__name__)


def render(form: FormDocument) -> bytes:
    if form.flattened:
        raise RenderError("Form has already been flattened")

    form.flattened = True
    try:
        form.doc.bake(annots=False, widgets=True)
        data = form.doc.tobytes(garbage=3, deflate=True)
    except Exception as e:
        raise RenderError(f"Rendering failed: {e}") from e

    logger.info("Rendered flattened PDF: %d page(s), %d bytes", form.doc.page_count, len(data))
    return data
