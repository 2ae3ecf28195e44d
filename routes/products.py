from flask import Blueprint, jsonify, request

from models import db
from models.product import Product

products_bp = Blueprint("products", __name__, url_prefix="/products")


def _clean_str(v) -> str:
    return (v if isinstance(v, str) else "").strip()


@products_bp.get("/")
def list_products():
    q = _clean_str(request.args.get("q"))

    query = db.session.query(Product).filter(Product.is_active == True)
    if q:
        like = f"%{q}%"
        query = query.filter((Product.code.ilike(like)) | (Product.description.ilike(like)))

    products = query.order_by(Product.description.asc()).limit(500).all()
    return jsonify([p.to_dict() for p in products])


@products_bp.post("/")
def create_product():
    data = request.get_json(silent=True) or {}
    code = _clean_str(data.get("code"))
    description = _clean_str(data.get("description"))

    if not code or not description:
        return jsonify({"ok": False, "message": "Código y descripción son obligatorios."}), 400

    exists = db.session.query(Product).filter(Product.code == code).first()
    if exists:
        return jsonify({"ok": False, "message": f"Ya existe un producto con código {code}."}), 409

    p = Product(code=code, description=description, is_active=True)
    try:
        db.session.add(p)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return jsonify(p.to_dict()), 201
