from .military_base import MilitaryBase
from .user import User
from .equipment_type import EquipmentType
from .purchase import Purchase
from .asset import Asset

# Workflow records
from .transfer import Transfer, TransferLine
from .assignment import Assignment
from .expenditure import Expenditure, ExpenditureLine

from .audit_log import AuditLog
from .serial_counter import SerialCounter
