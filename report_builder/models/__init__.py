from report_builder.core.db.session import Base
from report_builder.models.reporting import ReportExecution, SavedReport

__all__ = [
    "Base",
    "ReportExecution",
    "SavedReport",
]
