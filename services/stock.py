import csv
import io
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models.inventory import StockSnapshot
from models.kardex import InventoryMovement, build_product_key
from services.ledger import MovementLedger, StockProjectionStore, recompute_product
from services.valuation import quantize

logger = logging.getLogger(__name__)


def get_all_stock(db: Session) -> list[StockSnapshot]:
    return StockProjectionStore(db).all()


def get_stock_for_code(db: Session, code: str) -> Optional[StockSnapshot]:
    c = (code or "").strip()
    if not c:
        return None
    return StockProjectionStore(db).get(build_product_key(c))


def get_stock_by_code(db: Session) -> dict[str, StockSnapshot]:
    """Mapa código -> existencias (para pintar disponibilidad en el catálogo)."""
    out: dict[str, StockSnapshot] = {}
    for s in get_all_stock(db):
        code = (s.product_code or "").strip()
        if code:
            out[code] = s
    return out


def inventory_value(db: Session) -> Decimal:
    """Valor total del inventario: suma de existencias x costo promedio."""
    total = Decimal("0")
    for s in get_all_stock(db):
        total += quantize(s.on_hand) * quantize(s.avg_cost)
    return total.quantize(Decimal("0.01"))


def export_stock_csv(db: Session) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(["Código", "Descripción", "Existencias", "Costo Promedio", "Valor Total"])
    for s in get_all_stock(db):
        on_hand = quantize(s.on_hand)
        avg = quantize(s.avg_cost)
        w.writerow([
            s.product_code,
            s.product_desc,
            f"{on_hand:.2f}",
            f"{avg:.2f}",
            f"{on_hand * avg:.2f}",
        ])
    return buf.getvalue()


def rebuild_stock(db: Session, product_key: Optional[str] = None) -> int:
    """
    Reconstruye existencias desde el kardex. Borra filas huérfanas (sin
    movimientos). Devuelve cuántos productos se recalcularon.
    """
    if product_key:
        keys = {product_key}
    else:
        keys = {k for (k,) in db.query(InventoryMovement.product_key).distinct()}
        keys |= {s.product_key for s in get_all_stock(db)}

    for k in sorted(keys):
        recompute_product(db, k)

    logger.info("Existencias reconstruidas: %s productos", len(keys))
    return len(keys)


def clear_inventory(db: Session) -> None:
    """Borra kardex y existencias (reinicio total)."""
    movements = MovementLedger(db).clear()
    rows = StockProjectionStore(db).clear()
    db.flush()
    logger.warning("Inventario borrado: %s movimientos, %s filas de existencias", movements, rows)
