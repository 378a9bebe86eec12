"""
Inventory models split per concern; import from here:

    from apps.inventory.models import InventoryItem, InventoryMovement
"""

from .stock import *          # InventoryItem
from .movement import *       # InventoryMovement, MovementType
from .adjustment import *     # InventoryAdjustment, AdjustmentMode
from .transfer import *       # Transfer, TransferItem, TransferStatus
