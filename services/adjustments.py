import logging
from datetime import date as date_cls
from typing import Optional

from sqlalchemy.orm import Session

from models.kardex import InventoryMovement, MovementSource, MoveType, build_product_key
from schemas.results import CheckResult
from services.catalog import ProductCatalog, SqlProductCatalog
from services.ledger import DuplicateMovementError, MovementLedger, StockProjectionStore, record_movement
from services.valuation import quantize

logger = logging.getLogger(__name__)

DEFAULT_REASON = "AJUSTE"


def apply_manual_adjustment(
    db: Session,
    *,
    code: str,
    direction: str,
    qty,
    description: str = "",
    unit_cost=None,
    reason: Optional[str] = None,
    date: Optional[str] = None,
    catalog: Optional[ProductCatalog] = None,
) -> CheckResult:
    """
    Entrada o salida manual (conteo físico, correcciones).
    Una salida nunca puede dejar existencias negativas. No hay reversión:
    se corrige con un ajuste en sentido contrario.
    """
    code = (code or "").strip()
    if not code:
        return CheckResult(ok=False, message="Código requerido")

    direction = (direction or "").strip().upper()
    if direction not in (MoveType.IN.value, MoveType.OUT.value):
        return CheckResult(ok=False, message="Dirección inválida (usa IN u OUT)")
    move_type = MoveType(direction)

    try:
        q = quantize(qty)
        cost = quantize(unit_cost) if move_type == MoveType.IN else quantize(0)
    except ValueError:
        return CheckResult(ok=False, message="Cantidad inválida")
    if q <= 0:
        return CheckResult(ok=False, message="Cantidad inválida")

    product_key = build_product_key(code)
    store = StockProjectionStore(db)
    ledger = MovementLedger(db)

    current = store.get(product_key)
    on_hand = store.state(product_key).on_hand

    if move_type == MoveType.OUT and on_hand < q:
        logger.warning("Ajuste OUT rechazado %s: disponible=%s solicitado=%s", code, on_hand, q)
        return CheckResult(ok=False, message=f"Sin stock para {code}. Disponible: {on_hand:.2f}")

    product_desc = (current.product_desc if current else "") or ""
    if not product_desc:
        catalog = catalog or SqlProductCatalog(db)
        p = catalog.find_by_code(code)
        product_desc = (p.description if p else "") or (description or "").strip()

    doc_date = (date or "").strip() or date_cls.today().isoformat()
    doc_ref = f"MANUAL:{doc_date}:{(reason or '').strip() or DEFAULT_REASON}"
    ts = ledger.next_timestamp()

    movement = InventoryMovement(
        unique_key=f"{doc_ref}|{move_type.value}|{product_key}|{ts}",
        product_key=product_key,
        product_code=code,
        product_desc=product_desc,
        date=doc_date,
        move_type=move_type,
        qty=q,
        unit_cost=cost,
        source=MovementSource.MANUAL,
        doc_ref=doc_ref,
        timestamp=ts,
    )

    try:
        record_movement(db, movement)
    except DuplicateMovementError:
        return CheckResult(ok=False, message="No se pudo registrar el ajuste")

    logger.info("Ajuste manual %s %s qty=%s doc_ref=%s", move_type.value, code, q, doc_ref)
    return CheckResult(ok=True)
