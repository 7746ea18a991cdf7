from __future__ import annotations

from ..extensions import db
from rxledger.time_utils import to_utc_z


STAFF_ACTIONS = ("login", "logout", "sale_completed")


class StaffActivity(db.Model):
    """
    Per-staff activity feed for a pharmacy.

    Written best-effort after the action it describes has committed; a
    missing row never means the action did not happen.
    """
    __tablename__ = "staff_activities"
    __table_args__ = (
        db.Index("ix_staff_activity_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_staff_activity_staff_created", "staff_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=False)
    staff_id = db.Column(db.Integer, nullable=False)
    action = db.Column(db.String(32), nullable=False)
    details = db.Column(db.JSON, nullable=False, default=dict)
    device_info = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "staff_id": self.staff_id,
            "action": self.action,
            "details": self.details,
            "device_info": self.device_info,
            "created_at": to_utc_z(self.created_at),
        }
