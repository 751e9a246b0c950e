from report_builder.repositories.reporting_repository import ReportingRepository

__all__ = ["ReportingRepository"]
