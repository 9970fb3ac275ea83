from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from invoicing.models.product import Product
from invoicing.services.settings import data_dir
from invoicing.storage.json_repo import JsonRepository

log = logging.getLogger(__name__)


class CatalogService:
    """
    Products as served by the backend (data/products.json).
    - Invalid rows are skipped, not fatal
    - find_product() matches a name, SKU or barcode
    """

    def __init__(self, products_repo: Optional[JsonRepository] = None, base_dir: Optional[str | Path] = None) -> None:
        base = Path(base_dir) if base_dir else data_dir()
        self.products_repo = products_repo or JsonRepository(base / "products.json", entity_name="product", key="id")

    @staticmethod
    def _hydrate(d: Dict[str, Any]) -> Optional[Product]:
        try:
            return Product.model_validate(d)
        except ValidationError as e:
            log.warning("Skipping invalid product %s: %s", d.get("id"), e.error_count())
            return None

    def list_products(self, active_only: bool = False) -> List[Product]:
        out: List[Product] = []
        for d in self.products_repo.list_all():
            p = self._hydrate(d)
            if p and (p.active or not active_only):
                out.append(p)
        return out

    def get_product(self, product_id: int) -> Optional[Product]:
        row = self.products_repo.get_by_id(product_id)
        return self._hydrate(row) if row else None

    def find_product(self, name_or_code: str) -> Optional[Product]:
        probe = (name_or_code or "").strip()
        if not probe:
            return None
        for p in self.list_products():
            if probe in (p.name, p.sku, p.barcode):
                return p
        return None

    def search(self, term: str) -> List[Product]:
        t = (term or "").strip().casefold()
        if not t:
            return self.list_products(active_only=True)
        return [
            p for p in self.list_products(active_only=True)
            if t in p.name.casefold() or t in (p.category or "").casefold() or t in (p.sku or "").casefold()
        ]

    def add_product(self, p: Product) -> Product:
        self.products_repo.add(p)
        return p
