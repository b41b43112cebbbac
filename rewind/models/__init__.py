"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que Base.metadata les connaisse.
Import all models here so Base.metadata knows about them.
"""

from rewind.models.audit import AuditLog
from rewind.models.change import ChangeEntry, Operation
from rewind.models.undo_log import UndoLogEntry
from rewind.models.user import User
from rewind.models.vendor import Vendor
from rewind.models.purchase_order import PurchaseOrder, POLine
from rewind.models.quote import Quote, QuoteLine
from rewind.models.quality import NCR, RMA
from rewind.models.engineering import ECO, WorkOrder
from rewind.models.inventory import Device, InventoryItem

__all__ = [
    "AuditLog",
    "ChangeEntry",
    "Operation",
    "UndoLogEntry",
    "User",
    "Vendor",
    "PurchaseOrder",
    "POLine",
    "Quote",
    "QuoteLine",
    "NCR",
    "RMA",
    "ECO",
    "WorkOrder",
    "Device",
    "InventoryItem",
]
