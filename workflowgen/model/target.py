"""Target model entities that carry workflows into generation."""

from typing import Dict, List, Any, Optional, Iterator
from dataclasses import dataclass, field

from workflowgen.model.workflow import WorkflowModel


@dataclass
class TargetResourceSnippet:
    """A snippet file registered against a process manager under a resource type key."""
    resource_type: str
    resource_snippet_file: str
    output_path: Optional[str] = None
    resource_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetResourceSnippet":
        """Create from dictionary."""
        return cls(
            resource_type=data["resource_type"],
            resource_snippet_file=data["file"],
            output_path=data.get("output_path"),
            resource_name=data.get("name", ""),
        )


@dataclass
class TargetResourceTemplate:
    """Deployment resource whose parameters name the generated files."""
    resource_type: str
    resource_name: str = ""
    output_path: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetResourceTemplate":
        """Create from dictionary."""
        return cls(
            resource_type=data["resource_type"],
            resource_name=data.get("name", ""),
            output_path=data.get("output_path"),
            parameters=dict(data.get("parameters", {})),
        )


@dataclass
class ProcessManager:
    """Workflow-bearing intermediary; one generated Logic App per instance."""
    name: str
    key: Optional[str] = None
    description: str = ""
    workflow_model: Optional[WorkflowModel] = None
    snippets: List[TargetResourceSnippet] = field(default_factory=list)
    resources: List[TargetResourceTemplate] = field(default_factory=list)

    def find_resource_template(self, resource_type: str) -> Optional[TargetResourceTemplate]:
        for resource in self.resources:
            if resource.resource_type == resource_type:
                return resource
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessManager":
        """Create from dictionary."""
        workflow_model = None
        if data.get("workflow_model") is not None:
            workflow_model = WorkflowModel.from_dict(data["workflow_model"])

        return cls(
            name=data["name"],
            key=data.get("key"),
            description=data.get("description", ""),
            workflow_model=workflow_model,
            snippets=[TargetResourceSnippet.from_dict(s) for s in data.get("snippets", [])],
            resources=[TargetResourceTemplate.from_dict(r) for r in data.get("resources", [])],
        )


@dataclass
class Application:
    """Target application grouping intermediaries."""
    name: str
    intermediaries: List[Any] = field(default_factory=list)

    @property
    def process_managers(self) -> List[ProcessManager]:
        return [i for i in self.intermediaries if isinstance(i, ProcessManager)]


@dataclass
class TargetModel:
    """Already-built target model handed to the generator."""
    name: str = "target"
    applications: List[Application] = field(default_factory=list)

    def process_managers(self) -> Iterator[ProcessManager]:
        for application in self.applications:
            yield from application.process_managers
