import logging
from datetime import date as date_cls
from typing import Optional

from sqlalchemy.orm import Session

from models.kardex import InventoryMovement, MovementSource, MoveType, build_product_key
from schemas.documents import NOREF, PurchaseDocument, parse_purchase_documents
from schemas.results import PurchaseImportResult
from services.catalog import ProductCatalog, SqlProductCatalog
from services.ledger import DuplicateMovementError, MovementLedger, record_movement
from services.valuation import quantize

logger = logging.getLogger(__name__)


def apply_purchases_from_document(
    db: Session,
    document,
    *,
    catalog: Optional[ProductCatalog] = None,
) -> PurchaseImportResult:
    """
    Importa uno o varios documentos de compra como entradas al kardex.

    Cada línea termina exactamente en uno de: imported, skipped o
    missing_codes. resolved_by_description cuenta las importadas cuyo código
    se tomó del catálogo por descripción. Reimportar el mismo archivo no
    duplica nada: las líneas ya registradas cuentan como skipped.

    Lanza DocumentError si el documento no tiene la forma esperada.
    """
    documents = parse_purchase_documents(document)
    catalog = catalog or SqlProductCatalog(db)
    ledger = MovementLedger(db)
    result = PurchaseImportResult()

    for doc in documents:
        _apply_one(db, doc, catalog=catalog, ledger=ledger, result=result)

    logger.info(
        "Compras importadas: imported=%s skipped=%s missing=%s by_desc=%s",
        result.imported, result.skipped, result.missing_codes, result.resolved_by_description,
    )
    return result


def _apply_one(
    db: Session,
    doc: PurchaseDocument,
    *,
    catalog: ProductCatalog,
    ledger: MovementLedger,
    result: PurchaseImportResult,
) -> None:
    doc_ref = doc.identification.doc_ref or NOREF
    doc_date = (doc.identification.date or "").strip()
    provider_name = (doc.issuer.name or "").strip() or None
    provider_nit = (doc.issuer.tax_id or "").strip() or None

    for i, line in enumerate(doc.lines):
        code = line.code
        catalog_product = None
        by_description = False

        if not code:
            catalog_product = catalog.find_by_description(line.description) if line.description else None
            if catalog_product is None or not catalog_product.code:
                result.missing_codes += 1
                continue
            code = catalog_product.code.strip()
            by_description = True

        if line.quantity <= 0:
            result.skipped += 1
            continue

        product_key = build_product_key(code)
        if catalog_product is None:
            catalog_product = catalog.find_by_code(code)
        product_desc = ((catalog_product.description if catalog_product else "") or line.description or "").strip()

        movement = InventoryMovement(
            unique_key=f"{doc_ref}|{MoveType.IN.value}|{product_key}|{i}",
            product_key=product_key,
            product_code=code,
            product_desc=product_desc,
            date=doc_date or date_cls.today().isoformat(),
            move_type=MoveType.IN,
            qty=quantize(line.quantity),
            unit_cost=quantize(line.unit_cost),
            source=MovementSource.PURCHASE_DOC,
            doc_ref=doc_ref,
            timestamp=ledger.next_timestamp(),
            provider_name=provider_name,
            provider_nit=provider_nit,
            lot_date=doc_date or None,
        )

        try:
            record_movement(db, movement)
        except DuplicateMovementError:
            logger.debug("Línea ya importada, se omite: %s", movement.unique_key)
            result.skipped += 1
            continue

        result.imported += 1
        result.updated_stock_rows += 1
        if by_description:
            result.resolved_by_description += 1
