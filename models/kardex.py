import enum

from . import db


class MoveType(str, enum.Enum):
    IN = "IN"          # entrada (compra / ajuste+)
    OUT = "OUT"        # salida (venta / ajuste-)
    ADJUST = "ADJUST"  # reservado: fijar existencias directamente


class MovementSource(str, enum.Enum):
    PURCHASE_DOC = "purchase_doc"  # importación de documento de compra
    SALE_DOC = "sale_doc"          # documento de venta emitido
    MANUAL = "manual"              # ajuste manual del operador


def _enum_column(enum_cls):
    return db.Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


def build_product_key(code: str | None) -> str:
    return f"COD:{(code or '').strip()}"


class InventoryMovement(db.Model):
    """
    Kardex por producto. Solo se inserta o se borra (reversión por documento
    completo), nunca se actualiza.
    - qty siempre positivo, el signo lo da move_type
    - unit_cost solo aplica a entradas
    - timestamp: orden de escritura (no es la fecha del documento)
    """
    __tablename__ = "inventory_movements"

    id = db.Column(db.Integer, primary_key=True)

    unique_key = db.Column(db.String(255), nullable=False, unique=True)

    product_key = db.Column(db.String(80), nullable=False, index=True)
    product_code = db.Column(db.String(60), nullable=False)
    product_desc = db.Column(db.String(255), nullable=False, default="")

    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD

    move_type = db.Column(_enum_column(MoveType), nullable=False)
    qty = db.Column(db.Numeric(18, 6), nullable=False)
    unit_cost = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    source = db.Column(_enum_column(MovementSource), nullable=False)
    doc_ref = db.Column(db.String(160), nullable=False, index=True)

    timestamp = db.Column(db.BigInteger, nullable=False, index=True)

    # Datos del proveedor (solo compras), no intervienen en la valuación
    provider_name = db.Column(db.String(160), nullable=True)
    provider_nit = db.Column(db.String(40), nullable=True)
    lot_date = db.Column(db.String(10), nullable=True)

    __table_args__ = (
        db.Index("ix_inventory_movements_product_ts", "product_key", "timestamp"),
        db.Index("ix_inventory_movements_doc_source", "doc_ref", "source"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uniqueKey": self.unique_key,
            "productKey": self.product_key,
            "productCode": self.product_code,
            "productDesc": self.product_desc,
            "date": self.date,
            "type": self.move_type.value,
            "qty": float(self.qty),
            "unitCost": float(self.unit_cost or 0),
            "source": self.source.value,
            "docRef": self.doc_ref,
            "timestamp": self.timestamp,
            "providerName": self.provider_name,
            "providerNit": self.provider_nit,
            "lotDate": self.lot_date,
        }

    def __repr__(self):
        return f"<InventoryMovement {self.id} {self.move_type.value} {self.product_key} qty={self.qty} doc={self.doc_ref}>"
