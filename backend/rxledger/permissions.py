"""
Actor and role definitions for the stock ledger.

WHY: Identity and authorization live with the upstream identity gateway. The
ledger only receives an already-authenticated actor: who they are, their
role, their pharmacy (tenant) and a pre-computed override permission.
"""

from __future__ import annotations

from dataclasses import dataclass


# =============================================================================
# ROLES
# =============================================================================

class Role:
    PHARMACY_OWNER = "pharmacy_owner"
    ATTENDANT = "attendant"


POS_ROLES = (Role.PHARMACY_OWNER, Role.ATTENDANT)
OWNER_ROLES = (Role.PHARMACY_OWNER,)


# =============================================================================
# ACTOR
# =============================================================================

@dataclass(frozen=True)
class Actor:
    id: int
    role: str
    tenant_id: int
    override_stock: bool = False

    @property
    def can_override_stock(self) -> bool:
        """Owners always may; attendants only with the explicit grant."""
        if self.role == Role.PHARMACY_OWNER:
            return True
        return self.role == Role.ATTENDANT and self.override_stock
