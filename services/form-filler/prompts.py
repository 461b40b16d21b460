"""Extraction prompt: fixed rule block, rendered schema, then the document.

The payload is a pure function of schema order and section order, so the
same upload always produces the same prompt.
"""

from collections.abc import Iterable

from models import AggregatedDocument, SchemaField

RULES = """You are a data extraction engine. Read the DOCUMENT below and fill in the FIELDS.

EXTRACTION RULES:
- Extract a value ONLY if it is explicitly present in the document. Do not infer, guess, or compute values.
- If a value is not present, return an empty string "" for that key.
- Return ONLY a single valid JSON object whose keys are the mapping keys listed below. No other text before or after.
- Do NOT wrap the JSON in code fences and do NOT add explanations.

TYPE RULES:
- A free-text field yields a string.
- A yes/no indicator field yields a boolean (true or false).
- A single-choice field yields the exact matching option string, spelled exactly as in the instructions."""


def render_field(field: SchemaField) -> str:
    return (
        f"Field: {field.field_name}\n"
        f"Mapping key: {field.mapping_key}\n"
        f"Instructions: {field.instructions}"
    )


def render_schema(fields: Iterable[SchemaField]) -> str:
    return "\n\n".join(render_field(field) for field in fields)


def build_prompt(fields: Iterable[SchemaField], document: AggregatedDocument) -> str:
    return f"""{RULES}

FIELDS:

{render_schema(fields)}

DOCUMENT:

{document.render()}"""
