# jan_lookup/models/product_models.py

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

UNKNOWN_NAME = "unknown"


@dataclass
class ProductRecord:
    """
    This class is the blueprint for our final output. It represents the
    product master data for a single product code. Prices are integer
    currency units, dimensions are integer millimeters.
    """
    code: str
    name: str = UNKNOWN_NAME
    maker: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    width_mm: Optional[int] = None
    height_mm: Optional[int] = None
    depth_mm: Optional[int] = None

    @classmethod
    def unknown(cls, code: str) -> "ProductRecord":
        """Placeholder for a code the AI could not (or did not) resolve."""
        return cls(code=code)

    @property
    def is_unknown(self) -> bool:
        return self.name == UNKNOWN_NAME

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        return cls(
            code=str(data["code"]),
            name=data.get("name") or UNKNOWN_NAME,
            maker=data.get("maker"),
            category=data.get("category"),
            min_price=data.get("min_price"),
            max_price=data.get("max_price"),
            width_mm=data.get("width_mm"),
            height_mm=data.get("height_mm"),
            depth_mm=data.get("depth_mm"),
        )

    def to_schema_dict(self) -> Dict[str, Any]:
        """Exports the record in the same shape the AI is asked to produce (centimeters)."""
        def _cm(mm: Optional[int]) -> Optional[float]:
            return None if mm is None else mm / 10

        return {
            "jan": self.code,
            "maker": self.maker,
            "name": self.name,
            "category": self.category,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "width_cm": _cm(self.width_mm),
            "height_cm": _cm(self.height_mm),
            "depth_cm": _cm(self.depth_mm),
        }
