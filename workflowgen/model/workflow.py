"""Workflow model consumed by the generator."""

from typing import Dict, List, Any, Optional, Union, Iterator
from dataclasses import dataclass, field

from workflowgen.model.constants import (
    ACTIVITY_TYPE_WORKFLOW,
    PROPERTY_UNIQUE_ID,
)


@dataclass
class WorkflowObject:
    """Base of every node handed to a snippet for rendering."""
    name: str
    type: str = ""
    key: Optional[str] = None
    description: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def unique_id(self) -> Optional[int]:
        """The id assigned the last time the object was submitted for loading."""
        return self.properties.get(PROPERTY_UNIQUE_ID)

    @unique_id.setter
    def unique_id(self, value: int) -> None:
        self.properties[PROPERTY_UNIQUE_ID] = value


@dataclass
class WorkflowVariable(WorkflowObject):
    """A variable declared on an activity container."""
    data_type: str = "string"
    value: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowVariable":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data.get("type", "Variable"),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
            data_type=data.get("data_type", "string"),
            value=data.get("value"),
        )


@dataclass
class WorkflowMessage(WorkflowObject):
    """A message declared on an activity container."""
    message_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowMessage":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data.get("type", "Message"),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
            message_type=data.get("message_type"),
        )


@dataclass
class WorkflowChannel(WorkflowObject):
    """Named communication point; activator channels start new instances."""
    activator: bool = False
    channel_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowChannel":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data.get("type", "Channel"),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
            activator=bool(data.get("activator", False)),
            channel_type=data.get("channel_type"),
        )


@dataclass
class WorkflowActivity(WorkflowObject):
    """A single step in the workflow."""
    channel: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowActivity":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
            channel=data.get("channel"),
        )


@dataclass
class WorkflowActivityContainer(WorkflowObject):
    """Composite step holding child activities, variables and messages."""
    activities: List[Union[WorkflowActivity, "WorkflowActivityContainer"]] = field(default_factory=list)
    variables: List[WorkflowVariable] = field(default_factory=list)
    messages: List[WorkflowMessage] = field(default_factory=list)

    @property
    def containers(self) -> List["WorkflowActivityContainer"]:
        """Child activities that are themselves containers, in model order."""
        return [a for a in self.activities if isinstance(a, WorkflowActivityContainer)]

    def walk(self) -> Iterator["WorkflowActivityContainer"]:
        """Yield this container and every nested container depth first."""
        yield self
        for child in self.containers:
            yield from child.walk()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowActivityContainer":
        """Create from dictionary."""
        container = cls(
            name=data["name"],
            type=data.get("type", ""),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
        )
        container._load_children(data)
        return container

    def _load_children(self, data: Dict[str, Any]) -> None:
        for activity_data in data.get("activities", []):
            if "activities" in activity_data or activity_data.get("container", False):
                self.activities.append(WorkflowActivityContainer.from_dict(activity_data))
            else:
                self.activities.append(WorkflowActivity.from_dict(activity_data))

        self.variables = [WorkflowVariable.from_dict(v) for v in data.get("variables", [])]
        self.messages = [WorkflowMessage.from_dict(m) for m in data.get("messages", [])]


@dataclass
class WorkflowModel(WorkflowActivityContainer):
    """Root container of a process manager's workflow plus its channels."""
    channels: List[WorkflowChannel] = field(default_factory=list)

    @property
    def activator_channels(self) -> List[WorkflowChannel]:
        return [c for c in self.channels if c.activator]

    def find_channel(self, name: Optional[str]) -> Optional[WorkflowChannel]:
        """Find a channel by name or key."""
        if not name:
            return None
        for channel in self.channels:
            if channel.name == name or channel.key == name:
                return channel
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowModel":
        """Create from dictionary."""
        model = cls(
            name=data.get("name", "workflow"),
            type=data.get("type", ACTIVITY_TYPE_WORKFLOW),
            key=data.get("key"),
            description=data.get("description", ""),
            properties=dict(data.get("properties", {})),
            channels=[WorkflowChannel.from_dict(c) for c in data.get("channels", [])],
        )
        model._load_children(data)
        return model
