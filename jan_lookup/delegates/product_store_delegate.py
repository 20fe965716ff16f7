# jan_lookup/delegates/product_store_delegate.py
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..models import ProductRecord

logger = logging.getLogger(__name__)


class JsonProductStore:
    """
    Local product master kept in a single JSON file, keyed by product code.

    The resolver only reads from it; new records are written by the caller
    after (optional) human confirmation.
    """
    def __init__(self, path: Path):
        self.path = path
        self._records: Dict[str, ProductRecord] = {}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self):
        if not self.path.exists():
            logger.info("Product store not found at %s, starting empty.", self.path)
            return
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Error decoding product store %s: %s", self.path, e)
            raise
        for item in data.get("products", []):
            try:
                record = ProductRecord.from_dict(item)
            except (KeyError, TypeError) as e:
                logger.warning("Skipping malformed stored product %r: %s", item, e)
                continue
            self._records[record.code] = record
        logger.info("Loaded %d product(s) from %s", len(self._records), self.path.name)

    def get(self, code: str) -> Optional[ProductRecord]:
        return self._records.get(code)

    def all(self) -> List[ProductRecord]:
        return sorted(self._records.values(), key=lambda r: r.code)

    def put(self, record: ProductRecord):
        self._records[record.code] = record
        self._save()
        logger.info("Saved product %s (%s)", record.code, record.name)

    def put_many(self, records: List[ProductRecord]):
        for record in records:
            self._records[record.code] = record
        self._save()
        logger.info("Saved %d product(s) to %s", len(records), self.path.name)

    def _save(self):
        payload = {"products": [record.to_dict() for record in self.all()]}
        try:
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            logger.error("Failed to save product store to %s: %s", self.path, e, exc_info=True)
            raise

    def export_schema_json(self, output_path: Path) -> int:
        """Writes every stored product in the AI's own schema (sizes in cm). Returns the count."""
        records = self.all()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump([record.to_schema_dict() for record in records], f, indent=2, ensure_ascii=False)
        logger.info("Exported %d product(s) to %s", len(records), output_path)
        return len(records)
