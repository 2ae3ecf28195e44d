from datetime import datetime
from . import db


class StockSnapshot(db.Model):
    """
    Existencias por producto (cache del kardex).
    on_hand y avg_cost siempre deben ser iguales a reproducir todos los
    movimientos del producto en orden de timestamp.
    """
    __tablename__ = "inventory_stock"

    product_key = db.Column(db.String(80), primary_key=True)

    product_code = db.Column(db.String(60), nullable=False, index=True)
    product_desc = db.Column(db.String(255), nullable=False, default="")

    on_hand = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    avg_cost = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "productKey": self.product_key,
            "productCode": self.product_code,
            "productDesc": self.product_desc,
            "onHand": float(self.on_hand),
            "avgCost": float(self.avg_cost),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<StockSnapshot {self.product_key} on_hand={self.on_hand} avg_cost={self.avg_cost}>"
