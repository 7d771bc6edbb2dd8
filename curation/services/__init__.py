"""Long-running services that tie the intake pipeline together."""

from curation.services.intake_service import IntakeReport, IntakeService, SourcePlugin

__all__ = ["IntakeReport", "IntakeService", "SourcePlugin"]
