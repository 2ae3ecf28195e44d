"""
Reversión de movimientos por documento.

Solo se revierte un documento completo (doc_ref + source) y solo si ningún
producto afectado tiene movimientos posteriores: el stock que dejó el
documento puede haber sido usado por otra operación. La verificación
termina antes de borrar cualquier cosa.
"""
import logging

from sqlalchemy.orm import Session

from models.kardex import MovementSource
from schemas.documents import SaleDocument, parse_sale_document
from schemas.results import ReversalResult
from services.ledger import MovementLedger, recompute_product

logger = logging.getLogger(__name__)

_LATER_MESSAGES = {
    MovementSource.SALE_DOC: (
        "No se puede revertir porque existen movimientos posteriores "
        "(compras/ajustes/otras ventas) para uno o más productos de ese documento"
    ),
    MovementSource.PURCHASE_DOC: (
        "No se puede revertir porque existen movimientos posteriores "
        "(ventas/ajustes) para uno o más productos de esa importación"
    ),
}

_EMPTY_MESSAGES = {
    MovementSource.SALE_DOC: "No hay movimientos de venta para revertir",
    MovementSource.PURCHASE_DOC: "No se encontraron movimientos de compras para revertir",
}


def _revert_group(db: Session, doc_ref: str, source: MovementSource) -> ReversalResult:
    ledger = MovementLedger(db)

    group = ledger.by_doc_ref(doc_ref, source=source)
    if not group:
        return ReversalResult(ok=False, doc_ref=doc_ref, message=_EMPTY_MESSAGES[source])

    affected = sorted({m.product_key for m in group if m.product_key})
    end_ts = max(m.timestamp or 0 for m in group)

    if ledger.has_later(affected, end_ts):
        logger.warning("Reversión bloqueada doc_ref=%s source=%s: hay movimientos posteriores", doc_ref, source.value)
        return ReversalResult(ok=False, doc_ref=doc_ref, message=_LATER_MESSAGES[source])

    removed = ledger.delete_group(doc_ref, source)

    for product_key in affected:
        recompute_product(db, product_key)

    logger.info(
        "Revertido doc_ref=%s source=%s removed=%s products=%s",
        doc_ref, source.value, removed, len(affected),
    )
    return ReversalResult(ok=True, doc_ref=doc_ref, removed=removed, affected_products=len(affected))


def revert_sales_from_document(db: Session, document) -> ReversalResult:
    """Acepta el documento de venta (dict/SaleDocument/JSON) o directamente su doc_ref."""
    if isinstance(document, str) and not document.lstrip().startswith(("{", "[")):
        doc_ref = document.strip()
    else:
        doc: SaleDocument = parse_sale_document(document)
        doc_ref = doc.identification.doc_ref

    if not doc_ref:
        return ReversalResult(ok=False, message="No se pudo determinar docRef del documento")

    return _revert_group(db, doc_ref, MovementSource.SALE_DOC)


def revert_last_purchase_import(db: Session) -> ReversalResult:
    """Revierte la importación de compras más reciente (todas sus líneas)."""
    last = MovementLedger(db).latest(MovementSource.PURCHASE_DOC)
    if not last or not last.doc_ref:
        return ReversalResult(ok=False, message="No hay importaciones de compras para revertir")

    return _revert_group(db, last.doc_ref, MovementSource.PURCHASE_DOC)
