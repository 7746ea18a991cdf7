from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..stock_record import StockRecord, TABLETS
from rxledger.time_utils import to_utc_z


PRODUCT_STATUSES = ("active", "inactive", "discontinued")


class Product(db.Model):
    """
    Catalog product and the Stock Record it owns.

    MULTI-TENANT: Products are scoped to a pharmacy via tenant_id. The tenant
    itself lives with the identity collaborator; only its id is stored here.

    STOCK DESIGN DECISION:
    Stock is held as full_packs + loose_units. total_units is DERIVED
    (hybrid property) and never stored, so it cannot drift from the counters.
    Only services.stock_service writes full_packs / loose_units.

    units_per_pack is fixed per product; changing it does not re-normalize
    existing stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_status", "tenant_id", "status"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.CheckConstraint("units_per_pack >= 1", name="ck_products_units_per_pack"),
        db.CheckConstraint("full_packs >= 0", name="ck_products_full_packs"),
        db.CheckConstraint("loose_units >= 0", name="ck_products_loose_units"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    unit_type = db.Column(db.String(32), nullable=False, default=TABLETS)

    # Authoritative storage in cents
    cost_per_pack_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_per_pack_cents = db.Column(db.Integer, nullable=False, default=0)
    units_per_pack = db.Column(db.Integer, nullable=False, default=1)

    # Stock Record
    full_packs = db.Column(db.Integer, nullable=False, default=0)
    loose_units = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    max_stock_level = db.Column(db.Integer, nullable=False, default=100)

    created_by_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    @hybrid_property
    def total_units(self) -> int:
        return (self.full_packs or 0) * (self.units_per_pack or 1) + (self.loose_units or 0)

    @total_units.expression
    def total_units(cls):
        return cls.full_packs * cls.units_per_pack + cls.loose_units

    @property
    def stock(self) -> StockRecord:
        return StockRecord(
            full_packs=self.full_packs or 0,
            loose_units=self.loose_units or 0,
            units_per_pack=self.units_per_pack or 1,
        )

    def write_stock(self, record: StockRecord) -> None:
        if record.units_per_pack != self.units_per_pack:
            raise ValueError("stock record does not belong to this product")
        self.full_packs = record.full_packs
        self.loose_units = record.loose_units

    @property
    def price_per_unit_cents(self) -> float:
        if not self.units_per_pack:
            return 0
        return (self.selling_price_per_pack_cents or 0) / self.units_per_pack

    @property
    def stock_status(self) -> str:
        total = self.total_units
        if total == 0:
            return "out_of_stock"
        if total <= (self.min_stock_level or 0):
            return "low_stock"
        return "in_stock"

    @property
    def restock_quantity(self) -> int:
        return max(0, (self.max_stock_level or 0) - self.total_units)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "status": self.status,
            "unit_type": self.unit_type,
            "pricing": {
                "cost_per_pack_cents": self.cost_per_pack_cents,
                "selling_price_per_pack_cents": self.selling_price_per_pack_cents,
                "units_per_pack": self.units_per_pack,
                "price_per_unit_cents": self.price_per_unit_cents,
            },
            "stock": {
                "full_packs": self.full_packs,
                "loose_units": self.loose_units,
                "total_units": self.total_units,
                "min_stock_level": self.min_stock_level,
                "max_stock_level": self.max_stock_level,
                "stock_status": self.stock_status,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


AUDIT_ACTIONS = ("create", "update", "delete", "stock_adjust", "stock_add", "stock_remove", "sale")


class InventoryLog(db.Model):
    """
    Append-only audit entry for a stock-affecting action.

    details is stored as JSON but always written from one of the typed
    payloads in services.audit_service (keyed by action); use `payload` to
    read it back as that type.
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_invlog_product_created", "product_id", "created_at"),
        db.Index("ix_invlog_tenant_action", "tenant_id", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    action = db.Column(db.String(16), nullable=False)
    performed_by_id = db.Column(db.Integer, nullable=False, index=True)

    details = db.Column(db.JSON, nullable=False, default=dict)
    previous_state = db.Column(db.JSON, nullable=True)
    new_state = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    @property
    def payload(self):
        from ..services.audit_service import payload_from_log
        return payload_from_log(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "action": self.action,
            "performed_by_id": self.performed_by_id,
            "details": self.details,
            "previous_state": self.previous_state,
            "new_state": self.new_state,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryLog, "before_update")
def _reject_log_update(mapper, connection, target):
    raise ValueError("inventory logs are append-only")


@event.listens_for(InventoryLog, "before_delete")
def _reject_log_delete(mapper, connection, target):
    raise ValueError("inventory logs are append-only")
