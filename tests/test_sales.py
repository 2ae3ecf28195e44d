from decimal import Decimal

from factories import pline, purchase_doc, sale_doc, sline
from models.kardex import MovementSource, MoveType
from services.ledger import MovementLedger
from services.purchases import apply_purchases_from_document
from services.sales import apply_sales_from_document, validate_stock_for_sale
from services.stock import get_stock_for_code


def _stock(session, code="A", qty=10, cost="2.00"):
    apply_purchases_from_document(session, purchase_doc(f"BUY-{code}", [pline(code, qty, cost)]))


def test_sale_decrements_without_touching_cost(session):
    _stock(session)
    apply_purchases_from_document(session, purchase_doc("BUY-2", [pline("A", 10, "4.00")]))

    r = apply_sales_from_document(session, sale_doc("S-1", [sline("A", 5)]))

    assert (r.applied, r.skipped) == (1, 0)
    snap = get_stock_for_code(session, "A")
    assert snap.on_hand == Decimal("15")
    assert snap.avg_cost == Decimal("3")

    (m,) = MovementLedger(session).by_doc_ref("S-1")
    assert m.move_type == MoveType.OUT
    assert m.source == MovementSource.SALE_DOC
    assert m.unit_cost == Decimal("0")
    assert m.unique_key == "S-1|OUT|COD:A|0"


def test_lines_without_code_or_quantity_are_skipped(session):
    _stock(session)
    r = apply_sales_from_document(session, sale_doc("S-2", [
        sline(None, 1, "sin codigo"),
        sline("A", 0),
        sline("A", 2),
    ]))
    assert (r.applied, r.skipped) == (1, 2)
    assert get_stock_for_code(session, "A").on_hand == Decimal("8")


def test_applying_same_sale_twice_counts_duplicates_as_skipped(session):
    _stock(session)
    doc = sale_doc("S-3", [sline("A", 1), sline("A", 1)])
    apply_sales_from_document(session, doc)
    r = apply_sales_from_document(session, doc)
    assert (r.applied, r.skipped) == (0, 2)
    assert get_stock_for_code(session, "A").on_hand == Decimal("8")


def test_sale_may_drive_stock_negative_by_default(session):
    _stock(session, qty=2)
    r = apply_sales_from_document(session, sale_doc("S-4", [sline("A", 5)]))
    assert r.applied == 1
    assert get_stock_for_code(session, "A").on_hand == Decimal("-3")


def test_sale_refused_when_negative_stock_disallowed(session):
    _stock(session, qty=3)
    r = apply_sales_from_document(
        session,
        sale_doc("S-5", [sline("A", 2), sline("A", 2)]),
        allow_negative=False,
    )
    assert r.applied == 0
    assert r.skipped == 2
    assert "A" in r.message
    assert get_stock_for_code(session, "A").on_hand == Decimal("3")
    assert MovementLedger(session).by_doc_ref("S-5") == []


def test_validate_reports_first_insufficient_line(session):
    _stock(session, code="A", qty=5)
    _stock(session, code="B", qty=1)

    ok = validate_stock_for_sale(session, [sline("A", 5), sline("B", 1)])
    assert ok.ok is True

    bad = validate_stock_for_sale(session, [sline("A", 1), sline("B", 2), sline("C", 9)])
    assert bad.ok is False
    assert "B" in bad.message
    assert "1.00" in bad.message


def test_validate_unknown_product_has_zero_available(session):
    r = validate_stock_for_sale(session, [sline("ZZ", 1, "Cosa")])
    assert r.ok is False
    assert "ZZ" in r.message


def test_validate_requires_codes(session):
    r = validate_stock_for_sale(session, [sline("", 1, "algo")])
    assert r.ok is False
    assert "sin código" in r.message


def test_validate_does_not_write(session):
    _stock(session)
    before = len(MovementLedger(session).all())
    validate_stock_for_sale(session, [sline("A", 100)])
    assert len(MovementLedger(session).all()) == before
