from app.models.audit import AuditEntry  # noqa: F401
from app.models.classification import (  # noqa: F401
    BaselinePeriod,
    BaselineScope,
    ClassificationBaseline,
    ClassificationChange,
    HistoryClearance,
    HistoryView,
)
from app.models.registry import (  # noqa: F401
    Classification,
    DepartmentAssignment,
    Headcount,
    Officer,
    OfficerRemoval,
    OfficerStatus,
    RemovalCode,
    RemovalRequest,
    RemovalRequestStatus,
    Transfer,
    TransferDirection,
)
