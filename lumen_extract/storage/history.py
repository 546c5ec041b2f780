"""Persistent history of processed documents.

Records are kept newest first in a single JSON file. Large image payloads
are stripped before saving unless the store is configured to keep them.
"""

import base64
import json
import threading
import time
import uuid
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lumen_extract.extraction.rule_extractor import ExtractedField
from lumen_extract.ocr.document_processor import DocumentResult
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.utils.config import StorageConfig
from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)


def _now_millis() -> int:
    return int(time.time() * 1000)


def _data_url(image: RasterImage | None) -> str | None:
    if image is None:
        return None
    encoded = base64.b64encode(image.to_png_bytes()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


class DocumentRecord(BaseModel):
    """A processed document as persisted in the history file.

    Serialized with camelCase keys (``fileName``, ``extractedText`` ...).
    ``timestamp`` is milliseconds since the epoch.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file_name: str
    file_type: str
    timestamp: int = Field(default_factory=_now_millis)
    extracted_text: str
    confidence: float = Field(ge=0, le=100)
    fields: list[ExtractedField] = Field(default_factory=list)
    image_data: str | None = None
    enhanced_image_data: str | None = None

    @classmethod
    def from_result(
        cls, result: DocumentResult, file_type: str, include_images: bool = False
    ) -> "DocumentRecord":
        """Build a record from a processed document.

        With ``include_images`` the first page's source and enhanced images
        are embedded as PNG data URLs.
        """
        return cls(
            file_name=result.source_file,
            file_type=file_type,
            extracted_text=result.combined_text,
            confidence=max(0.0, min(100.0, result.confidence)),
            fields=list(result.fields),
            image_data=_data_url(result.preview_image) if include_images else None,
            enhanced_image_data=(
                _data_url(result.enhanced_preview) if include_images else None
            ),
        )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class HistoryStore:
    """JSON-file backed document history.

    Args:
        path: Location of the history file. Created on first save.
        keep_image_data: Whether image payloads are persisted.
    """

    def __init__(self, path: Path, keep_image_data: bool = False) -> None:
        self.path = Path(path)
        self.keep_image_data = keep_image_data
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> "HistoryStore":
        return cls(Path(config.history_path), keep_image_data=config.keep_image_data)

    def _read(self) -> list[DocumentRecord]:
        if not self.path.exists():
            return []
        with open(self.path) as f:
            raw = json.load(f)
        return [DocumentRecord.model_validate(item) for item in raw]

    def _write(self, records: list[DocumentRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump([r.to_json_dict() for r in records], f, indent=2)
        tmp_path.replace(self.path)

    def save(self, record: DocumentRecord) -> DocumentRecord:
        """Prepend a record to the history.

        Returns:
            The record as stored (without image payloads unless kept).
        """
        if not self.keep_image_data:
            record = record.model_copy(
                update={"image_data": None, "enhanced_image_data": None}
            )
        with self._lock:
            records = self._read()
            records.insert(0, record)
            self._write(records)
        logger.info("Saved %s to history (%d records)", record.id, len(records))
        return record

    def search(self, query: str) -> list[DocumentRecord]:
        """Records whose file name or extracted text contains ``query``.

        Matching ignores case. An empty query matches every record.
        """
        needle = query.lower()
        with self._lock:
            records = self._read()
        return [
            r
            for r in records
            if needle in r.file_name.lower() or needle in r.extracted_text.lower()
        ]

    def list(self) -> list[DocumentRecord]:
        """All records, newest first."""
        with self._lock:
            return self._read()

    def get(self, record_id: str) -> DocumentRecord | None:
        return next((r for r in self.list() if r.id == record_id), None)

    def delete(self, record_id: str) -> bool:
        """Remove a record by id.

        Returns:
            True if a record was removed.
        """
        with self._lock:
            records = self._read()
            remaining = [r for r in records if r.id != record_id]
            if len(remaining) == len(records):
                return False
            self._write(remaining)
        logger.info("Deleted %s from history", record_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)
        logger.info("Cleared history at %s", self.path)
