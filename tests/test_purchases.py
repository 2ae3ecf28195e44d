import json
from decimal import Decimal

import pytest

from factories import pline, purchase_doc
from models.kardex import InventoryMovement, MovementSource, MoveType
from schemas.documents import DocumentError
from services.ledger import MovementLedger
from services.purchases import apply_purchases_from_document
from services.stock import get_stock_for_code


def test_import_creates_movements_and_weighted_average(session):
    doc = purchase_doc("DOC-1", [pline("A", 10, "2.00"), pline("A", 10, "4.00"), pline("B", 3, "1.50")])

    r = apply_purchases_from_document(session, doc)

    assert r.imported == 3
    assert r.skipped == 0
    assert r.missing_codes == 0
    assert r.updated_stock_rows == 3

    a = get_stock_for_code(session, "A")
    assert a.on_hand == Decimal("20")
    assert a.avg_cost == Decimal("3")
    assert get_stock_for_code(session, "B").on_hand == Decimal("3")


def test_movement_fields_come_from_document(session):
    apply_purchases_from_document(session, purchase_doc("DOC-9", [pline(" A ", 2, 1, "Azucar")]))

    (m,) = MovementLedger(session).by_doc_ref("DOC-9")
    assert m.unique_key == "DOC-9|IN|COD:A|0"
    assert m.product_key == "COD:A"
    assert m.product_code == "A"
    assert m.move_type == MoveType.IN
    assert m.source == MovementSource.PURCHASE_DOC
    assert m.date == "2026-01-15"
    assert m.lot_date == "2026-01-15"
    assert m.provider_name == "DISTRIBUIDORA S.A."
    assert m.provider_nit == "0614-010101-101-1"


def test_reimport_is_idempotent(session):
    doc = purchase_doc("DOC-1", [pline("A", 10, 2), pline("A", 5, 8)])

    first = apply_purchases_from_document(session, doc)
    before = get_stock_for_code(session, "A")
    on_hand, avg = before.on_hand, before.avg_cost

    second = apply_purchases_from_document(session, doc)

    assert first.imported == 2
    assert second.imported == 0
    assert second.skipped == 2
    after = get_stock_for_code(session, "A")
    assert (after.on_hand, after.avg_cost) == (on_hand, avg)
    assert session.query(InventoryMovement).count() == 2


def test_missing_code_resolved_by_description(session, add_products):
    add_products(("P001", "Azucar Blanca 1 KG"))
    doc = purchase_doc("DOC-2", [pline(None, 4, "1.10", "  azucar   blanca 1 kg ")])

    r = apply_purchases_from_document(session, doc)

    assert r.imported == 1
    assert r.resolved_by_description == 1
    assert r.missing_codes == 0
    snap = get_stock_for_code(session, "P001")
    assert snap.on_hand == Decimal("4")
    assert snap.product_desc == "Azucar Blanca 1 KG"


def test_unresolvable_line_is_missing_code_not_fatal(session, add_products):
    add_products(("P001", "Azucar"))
    doc = purchase_doc("DOC-3", [
        pline("", 1, 1, "Producto desconocido"),
        pline("P001", 2, 1),
    ])

    r = apply_purchases_from_document(session, doc)

    assert r.missing_codes == 1
    assert r.imported == 1


def test_every_line_lands_in_exactly_one_bucket(session, add_products):
    add_products(("P001", "Azucar"))
    lines = [
        pline("A", 1, 1),            # imported
        pline("A", 0, 1),            # skipped (qty)
        pline("B", -2, 1),           # skipped (qty)
        pline(None, 1, 1, "nada"),   # missing
        pline(None, 3, 1, "AZUCAR"), # imported, by description
        pline("A", 1, 1),            # imported (other line index)
    ]
    r = apply_purchases_from_document(session, purchase_doc("DOC-4", lines))

    assert (r.imported, r.skipped, r.missing_codes) == (3, 2, 1)
    assert r.imported + r.skipped + r.missing_codes == len(lines)
    assert r.resolved_by_description == 1


def test_inactive_catalog_products_do_not_resolve(session, add_products):
    add_products(("P009", "Viejo"), active=False)
    r = apply_purchases_from_document(session, purchase_doc("DOC-5", [pline(None, 1, 1, "Viejo")]))
    assert r.missing_codes == 1


def test_document_without_reference_uses_sentinel(session):
    doc = {"identification": {"date": "2026-02-01"}, "lines": [pline("A", 1, 1)]}
    apply_purchases_from_document(session, doc)
    assert MovementLedger(session).by_doc_ref("NOREF")


def test_control_number_is_fallback_reference(session):
    doc = {"identification": {"controlNumber": "DTE-03-0001"}, "lines": [pline("A", 1, 1)]}
    apply_purchases_from_document(session, doc)
    assert MovementLedger(session).by_doc_ref("DTE-03-0001")


def test_batch_of_dte_documents_as_json_text(session):
    dtes = [
        {
            "identificacion": {"fecEmi": "2026-03-01", "codigoGeneracion": "GEN-1"},
            "emisor": {"nombre": "Proveedor Uno", "nit": "123"},
            "cuerpoDocumento": [{"codigo": "X1", "descripcion": "Uno", "cantidad": 2, "precioUni": 3.5}],
        },
        {
            "identificacion": {"fecEmi": "2026-03-02", "numeroControl": "CTRL-2"},
            "cuerpoDocumento": [{"codigo": 777, "descripcion": "Dos", "cantidad": "4", "precioUni": "1"}],
        },
    ]

    r = apply_purchases_from_document(session, json.dumps(dtes))

    assert r.imported == 2
    assert get_stock_for_code(session, "X1").avg_cost == Decimal("3.5")
    assert get_stock_for_code(session, "777").on_hand == Decimal("4")
    (m,) = MovementLedger(session).by_doc_ref("GEN-1")
    assert m.provider_name == "Proveedor Uno"


def test_malformed_document_is_rejected(session):
    with pytest.raises(DocumentError):
        apply_purchases_from_document(session, purchase_doc("BAD", [pline("A", "diez", 1)]))
    with pytest.raises(DocumentError):
        apply_purchases_from_document(session, "{not json")
    assert session.query(InventoryMovement).count() == 0
