from .inventory import Product, InventoryLog
from .sales import Sale, SaleLine
from .reconciliation import StockReconciliation
from .activity import StaffActivity

__all__ = [
    'Product', 'InventoryLog',
    'Sale', 'SaleLine',
    'StockReconciliation',
    'StaffActivity',
]
