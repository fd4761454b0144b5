"""Invoice draft with client-side totals"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from pydantic import BaseModel, Field

# Flat SST applied to every line
SST_RATE = Decimal("0.06")
CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class LineItem(BaseModel):
    description: str
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


class InvoiceDraft(BaseModel):
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return _money(sum((item.amount for item in self.line_items), Decimal("0")))

    @property
    def sst(self) -> Decimal:
        return _money(self.subtotal * SST_RATE)

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.sst

    def to_payload(self) -> dict:
        payload = self.model_dump(mode="json", exclude_none=True)
        payload["subtotal"] = str(self.subtotal)
        payload["tax_amount"] = str(self.sst)
        payload["total_amount"] = str(self.total)
        return payload
