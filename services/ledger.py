"""
Kardex de movimientos y tabla de existencias.

El kardex es la fuente de verdad; inventory_stock es una proyección que se
actualiza en cada movimiento y se puede reconstruir desde el kardex. Nada
aquí hace commit: la ruta que llama decide.
"""
import time
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.inventory import StockSnapshot
from models.kardex import InventoryMovement, MovementSource, MoveType
from services.valuation import EMPTY, StockState, fold, quantize, replay


class DuplicateMovementError(ValueError):
    """unique_key ya existe en el kardex (misma línea importada dos veces)."""


class MovementLedger:
    """
    Kardex append-only. No expone update: las correcciones son movimientos
    nuevos o la reversión completa de un documento.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_timestamp(self) -> int:
        """Marca de orden de escritura (epoch ms), estrictamente creciente."""
        last = self.db.query(func.max(InventoryMovement.timestamp)).scalar() or 0
        return max(int(time.time() * 1000), int(last) + 1)

    def exists(self, unique_key: str) -> bool:
        return (
            self.db.query(InventoryMovement.id)
            .filter(InventoryMovement.unique_key == unique_key)
            .first()
            is not None
        )

    def append(self, movement: InventoryMovement) -> InventoryMovement:
        if self.exists(movement.unique_key):
            raise DuplicateMovementError(f"Movimiento duplicado: {movement.unique_key}")
        if movement.timestamp is None:
            movement.timestamp = self.next_timestamp()
        self.db.add(movement)
        self.db.flush()
        return movement

    def by_doc_ref(self, doc_ref: str, source: Optional[MovementSource] = None) -> list[InventoryMovement]:
        q = self.db.query(InventoryMovement).filter(InventoryMovement.doc_ref == doc_ref)
        if source is not None:
            q = q.filter(InventoryMovement.source == source)
        return q.order_by(InventoryMovement.timestamp.asc(), InventoryMovement.id.asc()).all()

    def by_product_key(self, product_key: str) -> list[InventoryMovement]:
        return (
            self.db.query(InventoryMovement)
            .filter(InventoryMovement.product_key == product_key)
            .order_by(InventoryMovement.timestamp.asc(), InventoryMovement.id.asc())
            .all()
        )

    def all(
        self,
        *,
        product_key: Optional[str] = None,
        doc_ref: Optional[str] = None,
        source: Optional[MovementSource] = None,
        move_type: Optional[MoveType] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> list[InventoryMovement]:
        q = self.db.query(InventoryMovement)
        if product_key:
            q = q.filter(InventoryMovement.product_key == product_key)
        if doc_ref:
            q = q.filter(InventoryMovement.doc_ref == doc_ref)
        if source is not None:
            q = q.filter(InventoryMovement.source == source)
        if move_type is not None:
            q = q.filter(InventoryMovement.move_type == move_type)
        # fechas YYYY-MM-DD: el orden lexicográfico coincide con el cronológico
        if date_from:
            q = q.filter(InventoryMovement.date >= date_from)
        if date_to:
            q = q.filter(InventoryMovement.date <= date_to)

        if newest_first:
            q = q.order_by(InventoryMovement.timestamp.desc(), InventoryMovement.id.desc())
        else:
            q = q.order_by(InventoryMovement.timestamp.asc(), InventoryMovement.id.asc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def latest(self, source: MovementSource) -> Optional[InventoryMovement]:
        return (
            self.db.query(InventoryMovement)
            .filter(InventoryMovement.source == source)
            .order_by(InventoryMovement.timestamp.desc(), InventoryMovement.id.desc())
            .first()
        )

    def has_later(self, product_keys: Iterable[str], timestamp: int) -> bool:
        """¿Existe algún movimiento (de cualquier origen) posterior a timestamp?"""
        keys = list(product_keys)
        if not keys:
            return False
        return (
            self.db.query(InventoryMovement.id)
            .filter(
                InventoryMovement.product_key.in_(keys),
                InventoryMovement.timestamp > timestamp,
            )
            .first()
            is not None
        )

    def delete_group(self, doc_ref: str, source: MovementSource) -> int:
        removed = (
            self.db.query(InventoryMovement)
            .filter(InventoryMovement.doc_ref == doc_ref, InventoryMovement.source == source)
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return removed

    def clear(self) -> int:
        return self.db.query(InventoryMovement).delete()


class StockProjectionStore:
    """Key-value por product_key. No calcula nada por sí mismo."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_key: str) -> Optional[StockSnapshot]:
        return self.db.get(StockSnapshot, product_key)

    def state(self, product_key: str) -> StockState:
        snap = self.get(product_key)
        if not snap:
            return EMPTY
        return StockState(quantize(snap.on_hand), quantize(snap.avg_cost))

    def put(self, product_key: str, state: StockState, *, product_code: str, product_desc: str) -> StockSnapshot:
        snap = self.get(product_key)
        if not snap:
            snap = StockSnapshot(product_key=product_key)
            self.db.add(snap)
        snap.product_code = product_code
        snap.product_desc = product_desc or ""
        snap.on_hand = state.on_hand
        snap.avg_cost = state.avg_cost
        self.db.flush()
        return snap

    def delete(self, product_key: str) -> None:
        snap = self.get(product_key)
        if snap:
            self.db.delete(snap)
            self.db.flush()

    def all(self) -> list[StockSnapshot]:
        return (
            self.db.query(StockSnapshot)
            .order_by(StockSnapshot.product_code.asc())
            .all()
        )

    def clear(self) -> int:
        return self.db.query(StockSnapshot).delete()


def record_movement(db: Session, movement: InventoryMovement) -> StockSnapshot:
    """
    Inserta el movimiento y lo aplica incrementalmente a las existencias.
    Lanza DuplicateMovementError sin efectos si la línea ya existe.
    """
    ledger = MovementLedger(db)
    store = StockProjectionStore(db)

    ledger.append(movement)

    current = store.get(movement.product_key)
    state = store.state(movement.product_key)
    new_state = fold(state, movement.move_type, movement.qty, movement.unit_cost)

    return store.put(
        movement.product_key,
        new_state,
        product_code=movement.product_code,
        product_desc=(current.product_desc if current and current.product_desc else movement.product_desc),
    )


def recompute_product(db: Session, product_key: str) -> Optional[StockSnapshot]:
    """
    Reproduce todos los movimientos restantes del producto.
    Si ya no quedan, borra la fila de existencias y devuelve None.
    """
    ledger = MovementLedger(db)
    store = StockProjectionStore(db)

    remaining = ledger.by_product_key(product_key)
    if not remaining:
        store.delete(product_key)
        return None

    product_code = ""
    product_desc = ""
    for m in remaining:
        product_code = m.product_code or product_code
        product_desc = m.product_desc or product_desc

    state = replay(remaining)
    return store.put(product_key, state, product_code=product_code, product_desc=product_desc)
