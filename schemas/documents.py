"""
Documentos que llegan de fuera del kardex (compras importadas, ventas
emitidas, ajustes del operador).

Se aceptan dos formas de los mismos campos: la forma neutral
(identification/lines/...) y la del DTE tal como lo genera Hacienda
(identificacion/cuerpoDocumento/...). Todo se valida aquí una sola vez;
los servicios ya no revisan campo por campo.
"""
import json
from decimal import Decimal
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

NOREF = "NOREF"

# Numeric(18, 6): 12 dígitos enteros
MAX_AMOUNT = Decimal("1e12")


class DocumentError(ValueError):
    """El documento no tiene la forma esperada."""


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def _within_range(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and abs(v) >= MAX_AMOUNT:
        raise ValueError(f"valor fuera de rango (máximo {MAX_AMOUNT:,.0f})")
    return v


class _Doc(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class Identification(_Doc):
    date: Optional[str] = Field(default=None, validation_alias=_alias("date", "fecEmi"))
    document_ref: Optional[str] = Field(default=None, validation_alias=_alias("documentRef", "codigoGeneracion", "document_ref"))
    control_number: Optional[str] = Field(default=None, validation_alias=_alias("controlNumber", "numeroControl", "control_number"))

    @property
    def doc_ref(self) -> str:
        """codigoGeneracion, si no numeroControl; vacío si no hay ninguno."""
        return (self.document_ref or self.control_number or "").strip()


class Issuer(_Doc):
    name: Optional[str] = Field(default=None, validation_alias=_alias("name", "nombre"))
    tax_id: Optional[str] = Field(default=None, validation_alias=_alias("taxId", "nit", "tax_id"))


class _Line(_Doc):
    code: Optional[str] = Field(default=None, validation_alias=_alias("code", "codigo"))
    description: str = Field(default="", validation_alias=_alias("description", "descripcion"))
    quantity: Decimal = Field(default=Decimal("0"), validation_alias=_alias("quantity", "cantidad"))

    @field_validator("code")
    @classmethod
    def _blank_code_is_none(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return "" if v is None else v

    @field_validator("quantity", mode="before")
    @classmethod
    def _none_quantity(cls, v):
        return Decimal("0") if v is None or v == "" else v

    @field_validator("quantity")
    @classmethod
    def _quantity_in_range(cls, v):
        return _within_range(v)


class PurchaseLine(_Line):
    unit_cost: Decimal = Field(default=Decimal("0"), validation_alias=_alias("unitCost", "precioUni", "unit_cost"))

    @field_validator("unit_cost", mode="before")
    @classmethod
    def _none_cost(cls, v):
        return Decimal("0") if v is None or v == "" else v

    @field_validator("unit_cost")
    @classmethod
    def _cost_in_range(cls, v):
        return _within_range(v)


class SaleLine(_Line):
    pass


class PurchaseDocument(_Doc):
    identification: Identification = Field(default_factory=Identification, validation_alias=_alias("identification", "identificacion"))
    issuer: Issuer = Field(default_factory=Issuer, validation_alias=_alias("issuer", "emisor"))
    lines: list[PurchaseLine] = Field(default_factory=list, validation_alias=_alias("lines", "cuerpoDocumento"))


class SaleDocument(_Doc):
    identification: Identification = Field(default_factory=Identification, validation_alias=_alias("identification", "identificacion"))
    lines: list[SaleLine] = Field(default_factory=list, validation_alias=_alias("lines", "cuerpoDocumento"))


class ManualAdjustmentRequest(_Doc):
    code: str = Field(default="", validation_alias=_alias("code", "productCode", "codigo"))
    description: str = Field(default="", validation_alias=_alias("description", "productDesc", "descripcion"))
    direction: Literal["IN", "OUT"]
    qty: Decimal
    unit_cost: Optional[Decimal] = Field(default=None, validation_alias=_alias("unitCost", "unit_cost"))
    reason: Optional[str] = None
    date: Optional[str] = None

    @field_validator("direction", mode="before")
    @classmethod
    def _upper_direction(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("qty", "unit_cost")
    @classmethod
    def _amount_in_range(cls, v):
        return _within_range(v)


def _format_errors(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def _load(payload):
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise DocumentError(f"JSON inválido: {e.msg}") from e
    return payload


def _validate(model, payload):
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, dict):
        raise DocumentError("El documento debe ser un objeto JSON.")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise DocumentError(f"Documento inválido: {_format_errors(e)}") from e


def parse_purchase_documents(payload) -> list[PurchaseDocument]:
    """Un documento, una lista de documentos o su texto JSON."""
    data = _load(payload)
    if isinstance(data, list):
        return [_validate(PurchaseDocument, d) for d in data]
    return [_validate(PurchaseDocument, data)]


def parse_sale_document(payload) -> SaleDocument:
    return _validate(SaleDocument, _load(payload))


def parse_sale_lines(payload) -> list[SaleLine]:
    data = _load(payload)
    if isinstance(data, dict):
        data = data.get("lines", data.get("cuerpoDocumento"))
    if not isinstance(data, list):
        raise DocumentError("Se esperaba una lista de líneas.")
    return [_validate(SaleLine, d) for d in data]


def parse_manual_adjustment(payload) -> ManualAdjustmentRequest:
    return _validate(ManualAdjustmentRequest, _load(payload))
