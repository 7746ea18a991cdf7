from __future__ import annotations

from ..extensions import db
from rxledger.time_utils import to_utc_z


PAYMENT_METHODS = ("cash", "mpesa", "card", "bank_transfer", "insurance")
SALE_STATUSES = ("completed", "pending", "cancelled", "refunded")


class Sale(db.Model):
    """
    A completed checkout.

    Written once, inside the same DB transaction as the stock mutations it
    caused. ignore_stock and stock_warnings permanently record whether stock
    enforcement was relaxed and by how much.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "receipt_number", name="uq_sales_tenant_receipt"),
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_sales_attendant_created", "attendant_id", "created_at"),
        db.CheckConstraint("amount_paid_cents >= total_amount_cents", name="ck_sales_paid_covers_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=False, index=True)
    receipt_number = db.Column(db.String(32), nullable=False)

    attendant_id = db.Column(db.Integer, nullable=False)
    created_by_id = db.Column(db.Integer, nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    ignore_stock = db.Column(db.Boolean, nullable=False, default=False)
    stock_warnings = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.line_number",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} receipt={self.receipt_number!r} tenant_id={self.tenant_id}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "receipt_number": self.receipt_number,
            "attendant_id": self.attendant_id,
            "subtotal_cents": self.subtotal_cents,
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "change_due_cents": self.change_due_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "metadata": {
                "ignore_stock": self.ignore_stock,
                "stock_warnings": list(self.stock_warnings or []),
            },
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line item with name, unit type and price snapshotted at sale time."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    unit_type = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_type": self.unit_type,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
