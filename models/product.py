from datetime import datetime

from . import db


class Product(db.Model):
    """Catálogo de productos: fuente de código y descripción canónicos."""
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(60), nullable=False, unique=True)
    description = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "isActive": self.is_active,
        }

    def __repr__(self):
        return f"<Product {self.id} {self.code} {self.description}>"
