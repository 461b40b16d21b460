"""Load-once store for the read-only schema and template assets.

Both assets are process-wide and immutable once loaded, so concurrent requests
read the cached copies without locking. The lock only serializes first load.
"""

import logging
import re
import threading
from pathlib import Path

import pandas as pd

from config import settings
from errors import AssetLoadError
from models import SchemaField

logger = logging.getLogger(__name__)

# Normalized header -> SchemaField attribute
SCHEMA_COLUMNS: dict[str, str] = {
    "fieldname": "field_name",
    "displayname": "field_name",
    "mappingkey": "mapping_key",
    "key": "mapping_key",
    "instructions": "instructions",
    "instruction": "instructions",
}


def _normalize_header(name: object) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name).lower())


class AssetStore:
    """Supplies the field schema and the fillable template."""

    def __init__(self, schema_path: str | Path | None = None, template_path: str | Path | None = None):
        self.schema_path = Path(schema_path or settings.SCHEMA_PATH)
        self.template_path = Path(template_path or settings.TEMPLATE_PATH)
        self._lock = threading.Lock()
        self._schema: tuple[SchemaField, ...] | None = None
        self._template: bytes | None = None

    @property
    def loaded(self) -> bool:
        return self._schema is not None and self._template is not None

    def schema(self) -> tuple[SchemaField, ...]:
        if self._schema is None:
            with self._lock:
                if self._schema is None:
                    self._schema = self._load_schema()
        return self._schema

    def template(self) -> bytes:
        if self._template is None:
            with self._lock:
                if self._template is None:
                    self._template = self._load_template()
        return self._template

    def invalidate(self) -> None:
        """Drop cached assets; the next access reloads them from disk."""
        with self._lock:
            self._schema = None
            self._template = None
        logger.info("Asset cache invalidated")

    def _load_schema(self) -> tuple[SchemaField, ...]:
        try:
            if self.schema_path.suffix.lower() == ".csv":
                df = pd.read_csv(self.schema_path, dtype=str)
            else:
                # First sheet only
                df = pd.read_excel(self.schema_path, sheet_name=0, dtype=str)
        except Exception as e:
            raise AssetLoadError(f"Cannot read schema {self.schema_path}: {e}") from e

        columns = {}
        for column in df.columns:
            attr = SCHEMA_COLUMNS.get(_normalize_header(column))
            if attr and attr not in columns.values():
                columns[column] = attr
        missing = {"field_name", "mapping_key", "instructions"} - set(columns.values())
        if missing:
            raise AssetLoadError(f"Schema {self.schema_path} is missing column(s): {sorted(missing)}")

        df = df[list(columns)].rename(columns=columns).fillna("")

        fields: list[SchemaField] = []
        seen: set[str] = set()
        for row in df.itertuples(index=False):
            key = row.mapping_key.strip()
            if not key:
                continue
            if key in seen:
                raise AssetLoadError(f"Duplicate mapping key in schema: {key}")
            seen.add(key)
            fields.append(SchemaField(
                field_name=row.field_name.strip() or key,
                mapping_key=key,
                instructions=row.instructions.strip(),
            ))

        if not fields:
            raise AssetLoadError(f"Schema {self.schema_path} defines no fields")

        logger.info("Loaded schema %s: %d field(s)", self.schema_path.name, len(fields))
        return tuple(fields)

    def _load_template(self) -> bytes:
        try:
            data = self.template_path.read_bytes()
        except OSError as e:
            raise AssetLoadError(f"Cannot read template {self.template_path}: {e}") from e

        logger.info("Loaded template %s: %d bytes", self.template_path.name, len(data))
        return data
