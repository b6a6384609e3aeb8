"""Lead history provider: SQL store and lookup errors."""

from history.errors import (
    NotFoundError, LeadNotFoundError, CampaignNotFoundError,
    WorkflowRuleNotFoundError
)
from history.store import LeadHistoryStore

__all__ = [
    "LeadHistoryStore", "NotFoundError", "LeadNotFoundError",
    "CampaignNotFoundError", "WorkflowRuleNotFoundError"
]
