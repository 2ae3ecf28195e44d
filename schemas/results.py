from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Result(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PurchaseImportResult(_Result):
    imported: int = 0
    skipped: int = 0
    missing_codes: int = 0
    resolved_by_description: int = 0
    updated_stock_rows: int = 0


class SaleApplyResult(_Result):
    applied: int = 0
    skipped: int = 0
    message: Optional[str] = None


class CheckResult(_Result):
    ok: bool
    message: Optional[str] = None


class ReversalResult(_Result):
    ok: bool
    doc_ref: Optional[str] = None
    removed: int = 0
    affected_products: int = 0
    message: Optional[str] = None
