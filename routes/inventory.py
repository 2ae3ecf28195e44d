from flask import Blueprint, Response, current_app, jsonify, request

from models import db
from schemas.documents import DocumentError, parse_manual_adjustment
from services.adjustments import apply_manual_adjustment
from services.purchases import apply_purchases_from_document
from services.reversal import revert_last_purchase_import, revert_sales_from_document
from services.sales import apply_sales_from_document, validate_stock_for_sale
from services.stock import (
    clear_inventory,
    export_stock_csv,
    get_all_stock,
    get_stock_for_code,
    inventory_value,
    rebuild_stock,
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        raise DocumentError("Se esperaba un cuerpo JSON.")
    return data


def _options() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _status(ok: bool) -> int:
    return 200 if ok else 409


# -------------------------
# Consultas
# -------------------------
@inventory_bp.get("/stock")
def stock_list():
    rows = get_all_stock(db.session)
    return jsonify({
        "items": [s.to_dict() for s in rows],
        "totalValue": float(inventory_value(db.session)),
    })


@inventory_bp.get("/stock/<path:code>")
def stock_detail(code: str):
    snap = get_stock_for_code(db.session, code)
    if not snap:
        return jsonify({"ok": False, "message": f"Sin existencias registradas para {code}"}), 404
    return jsonify(snap.to_dict())


@inventory_bp.get("/stock.csv")
def stock_csv():
    return Response(
        export_stock_csv(db.session),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=inventario.csv"},
    )


# -------------------------
# Compras
# -------------------------
@inventory_bp.post("/purchases")
def purchases_import():
    payload = _payload()
    try:
        result = apply_purchases_from_document(db.session, payload)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(result.to_dict())


@inventory_bp.post("/purchases/revert-last")
def purchases_revert_last():
    try:
        result = revert_last_purchase_import(db.session)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(result.to_dict()), _status(result.ok)


# -------------------------
# Ventas
# -------------------------
@inventory_bp.post("/sales/validate")
def sales_validate():
    result = validate_stock_for_sale(db.session, _payload())
    return jsonify(result.to_dict()), _status(result.ok)


@inventory_bp.post("/sales")
def sales_apply():
    payload = _payload()
    allow_negative = bool(current_app.config.get("INVENTORY_ALLOW_NEGATIVE_STOCK", True))
    try:
        result = apply_sales_from_document(db.session, payload, allow_negative=allow_negative)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(result.to_dict()), (409 if result.message else 200)


@inventory_bp.post("/sales/revert")
def sales_revert():
    payload = _payload()
    if isinstance(payload, dict) and isinstance(payload.get("docRef"), str):
        payload = payload["docRef"]
    try:
        result = revert_sales_from_document(db.session, payload)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(result.to_dict()), _status(result.ok)


# -------------------------
# Ajustes manuales
# -------------------------
@inventory_bp.post("/adjustments")
def adjustment_post():
    req = parse_manual_adjustment(_payload())
    try:
        result = apply_manual_adjustment(
            db.session,
            code=req.code,
            description=req.description,
            direction=req.direction,
            qty=req.qty,
            unit_cost=req.unit_cost,
            reason=req.reason,
            date=req.date,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(result.to_dict()), _status(result.ok)


# -------------------------
# Mantenimiento
# -------------------------
@inventory_bp.post("/rebuild")
def stock_rebuild():
    data = _options()
    try:
        count = rebuild_stock(db.session, data.get("productKey") or None)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({"ok": True, "rebuilt": count})


@inventory_bp.post("/clear")
def inventory_clear():
    data = _options()
    if data.get("confirm") is not True:
        return jsonify({"ok": False, "message": "Confirma el borrado con {\"confirm\": true}"}), 400
    try:
        clear_inventory(db.session)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({"ok": True})
