"""Delete orchestration package."""

from .models import DeleteOutcome, DeleteReport, DeleteState
from .orchestrator import DeleteOrchestrator

__all__ = ["DeleteOrchestrator", "DeleteOutcome", "DeleteReport", "DeleteState"]
