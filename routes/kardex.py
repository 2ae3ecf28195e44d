from datetime import datetime

from flask import Blueprint, jsonify, request

from models import db
from models.kardex import MovementSource, MoveType, build_product_key
from services.ledger import MovementLedger

kardex_bp = Blueprint("kardex", __name__, url_prefix="/kardex")


def _parse_date(s: str | None) -> str | None:
    if not s:
        return None
    try:
        return datetime.strptime(s.strip(), "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        return None


def _parse_enum(enum_cls, raw: str | None):
    raw = (raw or "").strip()
    if not raw:
        return None
    for m in enum_cls:
        if m.value.lower() == raw.lower():
            return m
    return None


@kardex_bp.get("/")
def list_kardex():
    """
    Movimientos del kardex, más recientes primero.
    Filtros: code, doc_ref, source, type, from, to, limit (máx 1000).
    """
    code = (request.args.get("code") or "").strip()
    doc_ref = (request.args.get("doc_ref") or "").strip()

    try:
        limit = int(request.args.get("limit") or 300)
    except ValueError:
        limit = 300
    limit = max(1, min(limit, 1000))

    movements = MovementLedger(db.session).all(
        product_key=build_product_key(code) if code else None,
        doc_ref=doc_ref or None,
        source=_parse_enum(MovementSource, request.args.get("source")),
        move_type=_parse_enum(MoveType, request.args.get("type")),
        date_from=_parse_date(request.args.get("from")),
        date_to=_parse_date(request.args.get("to")),
        newest_first=True,
        limit=limit,
    )

    return jsonify({
        "movements": [m.to_dict() for m in movements],
        "sources": [s.value for s in MovementSource],
        "types": [t.value for t in MoveType],
    })
