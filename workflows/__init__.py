"""Workflow automation: trigger rules, actions and nurturing sequences."""

from workflows.triggers import check_trigger_condition, validate_trigger_config, config_value
from workflows.actions import AutomationPrincipal, WorkflowActionExecutor
from workflows.engine import WorkflowEngine, SWEEP_TRIGGER_TYPES
from workflows.nurturing import WORKFLOW_TEMPLATES, NurturingRunner, check_step_trigger

__all__ = [
    "check_trigger_condition", "validate_trigger_config", "config_value",
    "AutomationPrincipal", "WorkflowActionExecutor",
    "WorkflowEngine", "SWEEP_TRIGGER_TYPES",
    "WORKFLOW_TEMPLATES", "NurturingRunner", "check_step_trigger"
]
