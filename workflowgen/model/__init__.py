"""Workflow and target model used as generator input."""

from workflowgen.model.workflow import (
    WorkflowObject,
    WorkflowActivity,
    WorkflowActivityContainer,
    WorkflowChannel,
    WorkflowMessage,
    WorkflowModel,
    WorkflowVariable,
)
from workflowgen.model.target import (
    Application,
    ProcessManager,
    TargetModel,
    TargetResourceSnippet,
    TargetResourceTemplate,
)
from workflowgen.model.parser import ModelParser, parse_model_file, parse_model_string

__all__ = [
    'WorkflowObject',
    'WorkflowActivity',
    'WorkflowActivityContainer',
    'WorkflowChannel',
    'WorkflowMessage',
    'WorkflowModel',
    'WorkflowVariable',
    'Application',
    'ProcessManager',
    'TargetModel',
    'TargetResourceSnippet',
    'TargetResourceTemplate',
    'ModelParser',
    'parse_model_file',
    'parse_model_string',
]
