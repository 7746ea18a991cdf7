from __future__ import annotations

from ..extensions import db
from rxledger.time_utils import to_utc_z


RECONCILIATION_STATUSES = ("pending", "investigating", "resolved", "adjusted")
RECONCILIATION_ACTIONS = ("stock_adjusted", "written_off", "customer_return", "other")


class StockReconciliation(db.Model):
    """
    A shortfall accepted by an override sale, awaiting investigation.

    Created only for sale lines whose requested quantity exceeded the stock on
    hand (deficit > 0). Status only moves forward:
    pending -> investigating -> resolved | adjusted.
    """
    __tablename__ = "stock_reconciliations"
    __table_args__ = (
        db.Index("ix_recon_tenant_status", "tenant_id", "status"),
        db.Index("ix_recon_tenant_created", "tenant_id", "created_at"),
        db.CheckConstraint("deficit > 0", name="ck_recon_deficit_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    attendant_id = db.Column(db.Integer, nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    quantity_sold = db.Column(db.Integer, nullable=False)
    available_stock = db.Column(db.Integer, nullable=False)
    deficit = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending")

    resolved_by_id = db.Column(db.Integer, nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolution_notes = db.Column(db.String(500), nullable=True)
    action = db.Column(db.String(32), nullable=True)

    created_by_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sale = db.relationship("Sale", backref=db.backref("reconciliations", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sale_id": self.sale_id,
            "receipt_number": self.sale.receipt_number if self.sale else None,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "attendant_id": self.attendant_id,
            "quantity_sold": self.quantity_sold,
            "available_stock": self.available_stock,
            "deficit": self.deficit,
            "status": self.status,
            "action": self.action,
            "resolved_by_id": self.resolved_by_id,
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "resolution_notes": self.resolution_notes,
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
        }
