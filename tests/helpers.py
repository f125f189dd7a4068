"""Snippet library and model builders shared by the tests."""

from pathlib import Path

from workflowgen.generator.context import GenerationContext
from workflowgen.generator.engine import WorkflowGenerator
from workflowgen.generator.renderer import JinjaSnippetRenderer
from workflowgen.generator.repository import LocalFileRepository
from workflowgen.model.constants import RESOURCE_TYPE_AZURE_LOGIC_APP
from workflowgen.model.target import (
    Application,
    ProcessManager,
    TargetModel,
    TargetResourceSnippet,
    TargetResourceTemplate,
)
from workflowgen.model.workflow import WorkflowModel


# ============================================================================
# SNIPPET LIBRARY
# ============================================================================

SNIPPET_FILES = {
    "workflow.json.j2": """{
  "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
  "parameters": {},
  "variables": {},
  "resources": [
    {
      "type": "Microsoft.Logic/workflows",
      "name": "{{ process_manager.name | safe_name }}",
      "properties": {
        "definition": {
          "parameters": {},
          "triggers": {},
          "actions": {}
        },
        "parameters": {}
      }
    }
  ]
}
""",
    "workflow_no_parameters.json.j2": """{
  "parameters": {},
  "variables": {},
  "resources": [
    {
      "type": "Microsoft.Logic/workflows",
      "properties": {
        "definition": {
          "triggers": {},
          "actions": {}
        },
        "parameters": {}
      }
    }
  ]
}
""",
    "parameters.json": """{
  "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentParameters.json#",
  "contentVersion": "1.0.0.0",
  "parameters": {}
}
""",
    "scope.json.j2": """{"workflowDefinitionAction": {"{{ node.name | safe_name }}": {"type": "Scope", "actions": {}}}}""",
    "activity.json.j2": """{"workflowDefinitionAction": {"{{ node.name | safe_name }}": {"type": "Compose", "inputs": "{{ node.name }}"}}}""",
    "decision.json.j2": """{"workflowDefinitionAction": {"{{ node.name | safe_name }}": {"type": "Switch", "expression": "", "cases": {}, "default": {"actions": {}}}}, "workflowDefinitionActionPath": "$"}""",
    "branch.json.j2": """{"workflowDefinitionAction": {"{{ node.name | safe_name }}": {"case": "{{ node.name }}", "actions": {}}}}""",
    "receive.json.j2": """{"workflowDefinitionAction": {"Receive_{{ node.name | safe_name }}": {"type": "Compose", "inputs": "{{ channel.name if channel else '' }}"}}}""",
    "send.json.j2": """{"workflowDefinitionAction": {"Send_{{ node.name | safe_name }}": {"type": "Http", "inputs": "{{ channel.name if channel else '' }}"}}}""",
    "trigger.json.j2": """{"workflowTrigger": {"manual": {"type": "Request", "kind": "Http"}}}""",
    "variable.json.j2": """{"workflowDefinitionVariable": {"Initialize_{{ node.name | safe_name }}": {"type": "InitializeVariable", "inputs": {"variables": [{"name": "{{ node.name }}", "type": "{{ node.data_type }}"}]}}}}""",
    "message.json.j2": """{"workflowDefinitionMessage": {"Initialize_{{ node.name | safe_name }}_Message": {"type": "InitializeVariable", "inputs": {"variables": [{"name": "{{ node.name }}", "type": "object"}]}}}}""",
    "init.json.j2": """{"workflowDefinitionAction": {"Initialize_{{ node.name | safe_name }}": {"type": "Compose", "inputs": "init"}}}""",
    "parameter_a.json": """{"workflowParameter": {"P": {"value": {"a": 1}}}, "workflowDefinitionParameter": {"P": {"type": "object"}}, "armParameter": {"P": {"value": {}}}}""",
    "parameter_b.json": """{"workflowParameter": {"P": {"value": {"b": 2}}}}""",
    "parameter_a9.json": """{"workflowParameter": {"P": {"value": {"a": 9}}}}""",
    "property.json": """{"workflowResourceProperty": {"location": "westeurope"}, "workflowProperty": {"state": "Enabled"}}""",
    "broken.json.j2": """{"workflowDefinitionAction": {"{{ node.name }}": """,
}

BASE_SNIPPETS = [
    ("workflow.definition", "workflow.json.j2"),
    ("workflow.parametersdefinition", "parameters.json"),
    ("workflow.activitycontainer.workflow", "scope.json.j2"),
    ("workflow.placeholder.activity", "activity.json.j2"),
]


def write_snippets(folder: Path, files=None) -> Path:
    """Write snippet files into ``folder``."""
    folder.mkdir(parents=True, exist_ok=True)
    for name, content in (files or SNIPPET_FILES).items():
        (folder / name).write_text(content, encoding="utf-8")
    return folder


def make_snippets(pairs):
    return [TargetResourceSnippet(resource_type=t, resource_snippet_file=f) for t, f in pairs]


def make_process_manager(name="OrderProcess", workflow=None, snippets=None, extra_snippets=None):
    """Build a process manager with a Logic App resource template."""
    workflow_model = WorkflowModel.from_dict(workflow or {"name": "Main", "activities": []})
    pairs = list(BASE_SNIPPETS if snippets is None else snippets) + list(extra_snippets or [])
    return ProcessManager(
        name=name,
        key=f"app:{name}",
        workflow_model=workflow_model,
        snippets=make_snippets(pairs),
        resources=[
            TargetResourceTemplate(
                resource_type=RESOURCE_TYPE_AZURE_LOGIC_APP,
                resource_name=name,
                parameters={
                    "workflow_definition_file": f"{name}/workflow.json",
                    "workflow_parameters_file": f"{name}/workflow.parameters.json",
                },
            )
        ],
    )


def make_generator(process_managers, template_folders, generation_folder, **kwargs):
    model = TargetModel(applications=[Application(name="App", intermediaries=list(process_managers))])
    context = GenerationContext(template_folders, generation_folder)
    return WorkflowGenerator(
        model,
        context,
        LocalFileRepository(),
        JinjaSnippetRenderer(template_folders),
        **kwargs
    )


