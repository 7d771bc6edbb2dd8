"""Downstream processing of approved submissions."""

from curation.processing.processor import LoggingProcessor, Processor

__all__ = ["LoggingProcessor", "Processor"]
