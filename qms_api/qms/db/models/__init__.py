"""
ORM models for the QMS domain: organization, safety, documents, quality records, training,
master data, QA/NCR, complaints and module configuration.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .organization import (  # noqa: F401
    User,
    SystemRole,
    Department,
    Location,
)
from .safety import (  # noqa: F401
    SafetyIncident,
    NearMiss,
    SafetyObservation,
)
from .documents import (  # noqa: F401
    Document,
    DocumentType,
    DocumentFolder,
    DocChangeRequest,
    DocTemplate,
)
from .training import (  # noqa: F401
    TrainingRecord,
    LearningResource,
)
from .records import (  # noqa: F401
    QualityRecord,
    RecordType,
    RecordTemplate,
)
from .master_data import (  # noqa: F401
    MasterItem,
    MasterCustomer,
    MasterSupplier,
)
from .quality import (  # noqa: F401
    QATicket,
    QAInspectionRecord,
    NCRRecord,
)
from .complaints import (  # noqa: F401
    CustomerComplaint,
)
from .config import (  # noqa: F401
    ModuleConfig,
)
