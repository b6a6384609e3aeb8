"""Lookup errors raised by the lead history store and the services above it."""


class NotFoundError(LookupError):
    """An id did not resolve to a stored entity."""

    entity = "entity"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class LeadNotFoundError(NotFoundError):
    entity = "lead"


class CampaignNotFoundError(NotFoundError):
    entity = "campaign"


class WorkflowRuleNotFoundError(NotFoundError):
    entity = "workflow rule"
