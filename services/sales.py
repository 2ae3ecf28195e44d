import logging
from collections import defaultdict
from datetime import date as date_cls
from decimal import Decimal

from sqlalchemy.orm import Session

from models.kardex import InventoryMovement, MovementSource, MoveType, build_product_key
from schemas.documents import NOREF, SaleLine, parse_sale_document, parse_sale_lines
from schemas.results import CheckResult, SaleApplyResult
from services.ledger import DuplicateMovementError, MovementLedger, StockProjectionStore, record_movement
from services.valuation import quantize

logger = logging.getLogger(__name__)


def _fmt(d: Decimal) -> str:
    return f"{d:.2f}"


def validate_stock_for_sale(db: Session, lines) -> CheckResult:
    """
    Revisión previa a emitir una venta: falla en la primera línea sin código
    o sin existencias suficientes. No escribe nada.
    """
    if not lines or not all(isinstance(x, SaleLine) for x in lines):
        lines = parse_sale_lines(lines or [])
    store = StockProjectionStore(db)

    for line in lines:
        if not line.code:
            return CheckResult(ok=False, message="Hay items sin código. Asigna un código en el catálogo.")

        snap = store.get(build_product_key(line.code))
        on_hand = quantize(snap.on_hand) if snap else quantize(0)
        if on_hand < quantize(line.quantity):
            name = (snap.product_desc if snap and snap.product_desc else line.description) or line.code
            return CheckResult(
                ok=False,
                message=(
                    f"Sin stock para {line.code} ({name}). "
                    f"Disponible: {_fmt(on_hand)}, solicitado: {_fmt(quantize(line.quantity))}"
                ),
            )

    return CheckResult(ok=True)


def _check_aggregate(db: Session, lines: list[SaleLine]) -> CheckResult:
    """Como validate_stock_for_sale pero sumando líneas repetidas del mismo código."""
    store = StockProjectionStore(db)
    wanted: dict[str, Decimal] = defaultdict(lambda: quantize(0))
    for line in lines:
        if line.code and line.quantity > 0:
            wanted[line.code] += quantize(line.quantity)

    for code, qty in wanted.items():
        snap = store.get(build_product_key(code))
        on_hand = quantize(snap.on_hand) if snap else quantize(0)
        if on_hand < qty:
            return CheckResult(
                ok=False,
                message=f"Sin stock para {code}. Disponible: {_fmt(on_hand)}, solicitado: {_fmt(qty)}",
            )
    return CheckResult(ok=True)


def apply_sales_from_document(db: Session, document, *, allow_negative: bool = True) -> SaleApplyResult:
    """
    Registra las salidas de un documento de venta ya emitido.
    Solo descuenta existencias; el costo promedio no cambia.

    Con allow_negative=False el documento completo se rechaza si alguna línea
    dejaría existencias negativas.
    """
    doc = parse_sale_document(document)
    doc_ref = doc.identification.doc_ref or NOREF
    doc_date = (doc.identification.date or "").strip() or date_cls.today().isoformat()
    ledger = MovementLedger(db)
    result = SaleApplyResult()

    if not allow_negative:
        check = _check_aggregate(db, doc.lines)
        if not check.ok:
            logger.warning("Venta %s rechazada: %s", doc_ref, check.message)
            return SaleApplyResult(applied=0, skipped=len(doc.lines), message=check.message)

    for i, line in enumerate(doc.lines):
        if not line.code or line.quantity <= 0:
            result.skipped += 1
            continue

        product_key = build_product_key(line.code)
        movement = InventoryMovement(
            unique_key=f"{doc_ref}|{MoveType.OUT.value}|{product_key}|{i}",
            product_key=product_key,
            product_code=line.code,
            product_desc=line.description,
            date=doc_date,
            move_type=MoveType.OUT,
            qty=quantize(line.quantity),
            unit_cost=quantize(0),
            source=MovementSource.SALE_DOC,
            doc_ref=doc_ref,
            timestamp=ledger.next_timestamp(),
        )

        try:
            record_movement(db, movement)
        except DuplicateMovementError:
            logger.debug("Línea de venta ya aplicada, se omite: %s", movement.unique_key)
            result.skipped += 1
            continue

        result.applied += 1

    logger.info("Venta %s aplicada: applied=%s skipped=%s", doc_ref, result.applied, result.skipped)
    return result
