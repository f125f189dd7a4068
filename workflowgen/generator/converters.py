"""Conversion of workflow model nodes into workflow definition actions."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import structlog

from workflowgen.generator.context import GenerationContext
from workflowgen.generator.document import append, first_property, select
from workflowgen.generator.errors import DuplicateKeyError
from workflowgen.generator.messages import (
    AMBIGUOUS_SWITCH,
    DUPLICATE_KEY,
    UNABLE_TO_FIND_NODE,
    UNABLE_TO_FIND_SWITCH,
)
from workflowgen.generator.resolver import SnippetResolver
from workflowgen.generator.snippets import SnippetLoader
from workflowgen.model.constants import (
    ACTION_TYPE_SWITCH,
    ACTIVITY_TYPE_DECISION_BRANCH,
    ACTIVITY_TYPE_RECEIVE,
    ACTIVITY_TYPE_SEND,
    PATH_CASES,
    PATH_DEFAULT_ACTIONS,
    PROPERTY_VALUE_ELSE,
    RESOURCE_TYPE_WORKFLOW_ACTIVITY,
    RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER,
    RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER_PLACEHOLDER,
    RESOURCE_TYPE_WORKFLOW_ACTIVITY_PLACEHOLDER,
    RESOURCE_TYPE_WORKFLOW_CHANNEL_RECEIVE,
    RESOURCE_TYPE_WORKFLOW_CHANNEL_SEND,
    SNIPPET_WORKFLOW_DEFINITION_ACTION,
    SNIPPET_WORKFLOW_DEFINITION_ACTION_PATH,
)
from workflowgen.model.target import ProcessManager, TargetResourceSnippet, TargetResourceTemplate
from workflowgen.model.workflow import (
    WorkflowActivity,
    WorkflowActivityContainer,
    WorkflowChannel,
    WorkflowObject,
)

logger = structlog.get_logger(__name__)


@dataclass
class ConversionScope:
    """Everything a converter needs while generating one process manager."""
    process_manager: ProcessManager
    resource_template: TargetResourceTemplate
    resolver: SnippetResolver
    loader: SnippetLoader
    context: GenerationContext

    async def load(
        self,
        node: WorkflowObject,
        snippet: TargetResourceSnippet,
        channel: Optional[WorkflowChannel] = None
    ) -> Optional[Dict[str, Any]]:
        return await self.loader.load(self.process_manager, node, self.resource_template, snippet, channel)

    def missing_node(self, path: str) -> None:
        """Record that ``path`` does not exist in the document."""
        name = self.process_manager.name
        self.context.record_error(UNABLE_TO_FIND_NODE.format(path=path, name=name), process_manager=name, path=path)

    def insert(self, node: Dict[str, Any], key: str, value: Any, path: str) -> bool:
        """Add-once insert; a duplicate key is recorded as an error."""
        try:
            append(node, key, value)
        except DuplicateKeyError:
            name = self.process_manager.name
            self.context.record_error(
                DUPLICATE_KEY.format(key=key, path=path, name=name),
                process_manager=name,
                path=path
            )
            return False
        return True


ContainerHandler = Callable[
    [ConversionScope, WorkflowActivityContainer, Dict[str, Any]],
    Awaitable[Tuple[bool, Optional[Dict[str, Any]]]]
]
ActivityHandler = Callable[[ConversionScope, WorkflowActivity, Dict[str, Any]], Awaitable[bool]]


class ConverterRegistry:
    """Handlers keyed by exact model type tag, with a required default."""

    def __init__(self, default: Callable):
        if default is None:
            raise ValueError("A default converter is required")
        self.default = default
        self._handlers: Dict[str, Callable] = {}

    def register(self, type_tag: str, handler: Callable) -> None:
        self._handlers[type_tag] = handler

    def get(self, type_tag: str) -> Callable:
        return self._handlers.get(type_tag, self.default)

    def __contains__(self, type_tag: str) -> bool:
        return type_tag in self._handlers


def _actions_path(action_name: str) -> str:
    escaped = action_name.replace("\\", "\\\\").replace("'", "\\'")
    return f"$['{escaped}'].actions"


async def _container_actions(
    scope: ConversionScope,
    container: WorkflowActivityContainer
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Render a container's snippet into its actions and optional child path."""
    key = SnippetResolver.resource_type_key(RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER, container.type)
    snippet = scope.resolver.find_with_placeholder(key, RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER_PLACEHOLDER)
    if snippet is None:
        return None, None

    fragment = await scope.load(container, snippet)
    if not fragment:
        return None, None

    actions = fragment.get(SNIPPET_WORKFLOW_DEFINITION_ACTION)
    if not isinstance(actions, dict) or not actions:
        return None, None
    return actions, fragment.get(SNIPPET_WORKFLOW_DEFINITION_ACTION_PATH)


# ============================================================================
# CONTAINERS
# ============================================================================

async def convert_container(
    scope: ConversionScope,
    container: WorkflowActivityContainer,
    parent: Dict[str, Any]
) -> Tuple[bool, Optional[Dict[str, Any]]]:
    """Append the container's actions to ``parent`` and return its child scope."""
    actions, action_path = await _container_actions(scope, container)
    if actions is None:
        return False, None

    inserted = True
    for name, action in actions.items():
        if scope.insert(parent, name, action, "actions"):
            logger.debug("added_container_action", action=name, container=container.name)
        else:
            inserted = False
    if not inserted:
        return False, None

    path = action_path or _actions_path(next(iter(actions)))
    child = select(parent, path)
    if not isinstance(child, dict):
        scope.missing_node(path)
        return False, None
    return True, child


async def convert_decision_branch(
    scope: ConversionScope,
    container: WorkflowActivityContainer,
    parent: Dict[str, Any]
) -> Tuple[bool, Optional[Dict[str, Any]]]:
    """Add a case to the Switch in ``parent``; the Else branch uses its default."""
    actions, action_path = await _container_actions(scope, container)
    if actions is None:
        return False, None

    process_manager = scope.process_manager.name
    switches = [
        action for action in parent.values()
        if isinstance(action, dict) and action.get("type") == ACTION_TYPE_SWITCH
    ]
    if not switches:
        scope.context.record_error(
            UNABLE_TO_FIND_SWITCH.format(branch=container.name, name=process_manager),
            process_manager=process_manager
        )
        return False, None
    if len(switches) > 1:
        scope.context.record_error(
            AMBIGUOUS_SWITCH.format(count=len(switches), branch=container.name, name=process_manager),
            process_manager=process_manager
        )
        return False, None

    switch = switches[0]
    if container.name != PROPERTY_VALUE_ELSE:
        cases = select(switch, PATH_CASES)
        if not isinstance(cases, dict):
            scope.missing_node(PATH_CASES)
            return False, None

        name, action = first_property(actions)
        if not scope.insert(cases, name, action, PATH_CASES):
            return False, None
        logger.debug("added_decision_case", case=name, branch=container.name)

        path = action_path or _actions_path(name)
        child = select(cases, path)
    else:
        path = PATH_DEFAULT_ACTIONS
        child = select(switch, path)

    if not isinstance(child, dict):
        scope.missing_node(path)
        return False, None
    return True, child


async def add_prebuilt_actions(
    scope: ConversionScope,
    container: WorkflowActivityContainer,
    parent: Dict[str, Any]
) -> int:
    """Append actions from every ``<container key>.*`` snippet to ``parent``."""
    key = SnippetResolver.resource_type_key(RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER, container.type)
    count = 0
    for snippet in scope.resolver.find_prefixed(key):
        fragment = await scope.load(container, snippet)
        if not fragment:
            continue
        action = first_property(fragment.get(SNIPPET_WORKFLOW_DEFINITION_ACTION))
        if action is not None and scope.insert(parent, action[0], action[1], "actions"):
            count += 1

    if count:
        logger.debug("added_prebuilt_actions", container=container.name, count=count)
    return count


# ============================================================================
# ACTIVITIES
# ============================================================================

async def convert_activity(
    scope: ConversionScope,
    activity: WorkflowActivity,
    parent: Dict[str, Any]
) -> bool:
    """Append every action of the activity's snippet (or the placeholder)."""
    key = SnippetResolver.resource_type_key(RESOURCE_TYPE_WORKFLOW_ACTIVITY, activity.type)
    snippet = scope.resolver.find_with_placeholder(key, RESOURCE_TYPE_WORKFLOW_ACTIVITY_PLACEHOLDER)
    if snippet is None:
        return False

    fragment = await scope.load(activity, snippet)
    actions = fragment.get(SNIPPET_WORKFLOW_DEFINITION_ACTION) if fragment else None
    if not isinstance(actions, dict):
        return False

    for name, action in actions.items():
        scope.insert(parent, name, action, "actions")
        logger.debug("added_activity_action", action=name, activity=activity.name)
    return True


async def _convert_channel_activity(
    scope: ConversionScope,
    activity: WorkflowActivity,
    parent: Dict[str, Any],
    prefix: str
) -> bool:
    channel = None
    model = scope.process_manager.workflow_model
    if activity.channel:
        channel = model.find_channel(activity.channel) if model else None
        if channel is None:
            logger.warning("channel_not_found", channel=activity.channel, activity=activity.name)

    converted = False
    for snippet in scope.resolver.find_prefixed(prefix):
        fragment = await scope.load(activity, snippet, channel)
        if not fragment:
            continue
        action = first_property(fragment.get(SNIPPET_WORKFLOW_DEFINITION_ACTION))
        if action is not None and scope.insert(parent, action[0], action[1], "actions"):
            converted = True
            logger.debug("added_channel_action", action=action[0], activity=activity.name)
    return converted


async def convert_receive_activity(
    scope: ConversionScope,
    activity: WorkflowActivity,
    parent: Dict[str, Any]
) -> bool:
    return await _convert_channel_activity(scope, activity, parent, RESOURCE_TYPE_WORKFLOW_CHANNEL_RECEIVE)


async def convert_send_activity(
    scope: ConversionScope,
    activity: WorkflowActivity,
    parent: Dict[str, Any]
) -> bool:
    return await _convert_channel_activity(scope, activity, parent, RESOURCE_TYPE_WORKFLOW_CHANNEL_SEND)


def default_container_converters() -> ConverterRegistry:
    registry = ConverterRegistry(convert_container)
    registry.register(ACTIVITY_TYPE_DECISION_BRANCH, convert_decision_branch)
    return registry


def default_activity_converters() -> ConverterRegistry:
    registry = ConverterRegistry(convert_activity)
    registry.register(ACTIVITY_TYPE_RECEIVE, convert_receive_activity)
    registry.register(ACTIVITY_TYPE_SEND, convert_send_activity)
    return registry
