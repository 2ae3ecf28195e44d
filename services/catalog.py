import re
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from models.product import Product


def normalize_text(value: str | None) -> str:
    """Sin espacios al borde, espacios internos colapsados, mayúsculas."""
    return re.sub(r"\s+", " ", (value or "").strip()).upper()


class ProductCatalog(Protocol):
    def find_by_description(self, text: str) -> Optional[Product]: ...

    def find_by_code(self, code: str) -> Optional[Product]: ...


class SqlProductCatalog:
    """Catálogo sobre la tabla products (solo activos)."""

    def __init__(self, db: Session):
        self.db = db
        self._by_desc: dict[str, Product] | None = None

    def _desc_index(self) -> dict[str, Product]:
        if self._by_desc is None:
            index: dict[str, Product] = {}
            products = (
                self.db.query(Product)
                .filter(Product.is_active == True)
                .order_by(Product.id.asc())
                .all()
            )
            for p in products:
                k = normalize_text(p.description)
                # si hay descripciones repetidas gana la primera
                if k and k not in index:
                    index[k] = p
            self._by_desc = index
        return self._by_desc

    def find_by_description(self, text: str) -> Optional[Product]:
        k = normalize_text(text)
        if not k:
            return None
        return self._desc_index().get(k)

    def find_by_code(self, code: str) -> Optional[Product]:
        c = (code or "").strip()
        if not c:
            return None
        return (
            self.db.query(Product)
            .filter(Product.code == c, Product.is_active == True)
            .first()
        )
