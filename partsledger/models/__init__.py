from partsledger.models.catalog import Part, Warehouse  # noqa: F401
from partsledger.models.inventory import (  # noqa: F401
    InventoryRequest,
    InventoryRequestLine,
    InventoryRequestStatus,
    InventoryReservation,
    PartItem,
    PartItemStatus,
)
from partsledger.models.issues import (  # noqa: F401
    InventoryIssue,
    InventoryIssueLine,
    InventoryIssueStatus,
)
from partsledger.models.receipts import (  # noqa: F401
    CashExpense,
    InventoryReceipt,
    InventoryReceiptItem,
    InventoryReceiptStatus,
)
