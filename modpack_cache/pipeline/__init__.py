# modpack_cache/pipeline/__init__.py
from .aggregator import Aggregator, EntryFailure, RunReport, logFailureSummary

__all__ = ["Aggregator", "EntryFailure", "RunReport", "logFailureSummary"]
