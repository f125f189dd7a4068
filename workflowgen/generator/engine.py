"""Generate Logic App workflow documents for every process manager in a target model."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import structlog

from workflowgen.config import Settings, get_settings
from workflowgen.generator.binder import ActionBinder
from workflowgen.generator.context import GenerationContext
from workflowgen.generator.converters import (
    ActivityHandler,
    ContainerHandler,
    ConversionScope,
    add_prebuilt_actions,
    default_activity_converters,
    default_container_converters,
)
from workflowgen.generator.document import Document, append_if_absent, first_property, merge_missing, select
from workflowgen.generator.errors import GenerationError, OutputWriteError
from workflowgen.generator.messages import DOCUMENT_FAILED, ErrorMessage, PROCESS_MANAGER_FAILED
from workflowgen.generator.renderer import JinjaSnippetRenderer, SnippetRenderer
from workflowgen.generator.repository import FileRepository, LocalFileRepository
from workflowgen.generator.resolver import SnippetResolver
from workflowgen.generator.snippets import SnippetLoader
from workflowgen.model.constants import (
    PARAMETER_WORKFLOW_DEFINITION_FILE,
    PARAMETER_WORKFLOW_PARAMETERS_FILE,
    PATH_ARM_PARAMETERS,
    PATH_ARM_VARIABLES,
    PATH_DEFINITION_ACTIONS,
    PATH_DEFINITION_PARAMETERS,
    PATH_DEFINITION_TRIGGERS,
    PATH_WORKFLOW_RESOURCE,
    PATH_WORKFLOW_RESOURCE_PARAMETERS,
    PATH_WORKFLOW_RESOURCE_PROPERTIES,
    RESOURCE_TYPE_AZURE_LOGIC_APP,
    RESOURCE_TYPE_WORKFLOW_CHANNEL_TRIGGER,
    RESOURCE_TYPE_WORKFLOW_DEFINITION,
    RESOURCE_TYPE_WORKFLOW_MESSAGE,
    RESOURCE_TYPE_WORKFLOW_MESSAGE_PLACEHOLDER,
    RESOURCE_TYPE_WORKFLOW_PARAMETER,
    RESOURCE_TYPE_WORKFLOW_PARAMETERS_DEFINITION,
    RESOURCE_TYPE_WORKFLOW_PROPERTY,
    RESOURCE_TYPE_WORKFLOW_VARIABLE,
    RESOURCE_TYPE_WORKFLOW_VARIABLE_PLACEHOLDER,
    SNIPPET_ARM_PARAMETER,
    SNIPPET_ARM_TEMPLATE_PARAMETER,
    SNIPPET_ARM_TEMPLATE_VARIABLE,
    SNIPPET_WORKFLOW_DEFINITION_MESSAGE,
    SNIPPET_WORKFLOW_DEFINITION_PARAMETER,
    SNIPPET_WORKFLOW_DEFINITION_VARIABLE,
    SNIPPET_WORKFLOW_PARAMETER,
    SNIPPET_WORKFLOW_PROPERTY,
    SNIPPET_WORKFLOW_RESOURCE_PROPERTY,
    SNIPPET_WORKFLOW_TRIGGER,
    TEMPLATE_EXTENSIONS,
)
from workflowgen.model.target import ProcessManager, TargetModel
from workflowgen.model.workflow import WorkflowActivityContainer

logger = structlog.get_logger(__name__)


@dataclass
class GenerationResult:
    """Outcome of a generator run."""
    generated_files: List[Path] = field(default_factory=list)
    processed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[ErrorMessage] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.errors


class WorkflowGenerator:
    """Stitch snippets into a Logic App definition and parameters file per process manager."""

    def __init__(
        self,
        model: TargetModel,
        context: GenerationContext,
        repository: FileRepository,
        renderer: SnippetRenderer,
        template_extensions: Iterable[str] = TEMPLATE_EXTENSIONS,
        max_concurrent: int = 1,
        bind_branches: bool = False,
        json_indent: int = 2
    ):
        if model is None:
            raise ValueError("model must not be None")
        if context is None:
            raise ValueError("context must not be None")
        if repository is None:
            raise ValueError("repository must not be None")
        if renderer is None:
            raise ValueError("renderer must not be None")

        self.model = model
        self.context = context
        self.repository = repository
        self.max_concurrent = max(1, max_concurrent)
        self.json_indent = json_indent

        self.loader = SnippetLoader(repository, renderer, context, template_extensions)
        self.binder = ActionBinder(context, bind_branches=bind_branches)
        self.container_converters = default_container_converters()
        self.activity_converters = default_activity_converters()

    @classmethod
    def from_settings(cls, model: TargetModel, settings: Optional[Settings] = None) -> "WorkflowGenerator":
        """Build a generator backed by the local filesystem and Jinja2."""
        settings = settings or get_settings()
        context = GenerationContext(settings.template_folders, settings.generation_folder)
        return cls(
            model,
            context,
            LocalFileRepository(),
            JinjaSnippetRenderer(context.template_folders),
            template_extensions=settings.template_extensions,
            max_concurrent=settings.max_concurrent,
            bind_branches=settings.bind_branch_actions,
            json_indent=settings.json_indent
        )

    def register_container_converter(self, type_tag: str, handler: ContainerHandler) -> None:
        self.container_converters.register(type_tag, handler)

    def register_activity_converter(self, type_tag: str, handler: ActivityHandler) -> None:
        self.activity_converters.register(type_tag, handler)

    async def generate(self, cancel_event: Optional[asyncio.Event] = None) -> GenerationResult:
        """Generate every process manager of every application.

        Cancellation is only checked before a process manager is started.
        """
        result = GenerationResult()
        first_error = len(self.context.errors)
        process_managers = list(self.model.process_managers())
        logger.info("generation_started", process_managers=len(process_managers), concurrency=self.max_concurrent)

        if self.max_concurrent == 1:
            for process_manager in process_managers:
                if not await self._run(process_manager, result, cancel_event):
                    break
        else:
            semaphore = asyncio.Semaphore(self.max_concurrent)

            async def run(process_manager: ProcessManager) -> None:
                async with semaphore:
                    await self._run(process_manager, result, cancel_event)

            await asyncio.gather(*(run(pm) for pm in process_managers))

        result.errors = self.context.errors[first_error:]
        logger.info(
            "generation_completed",
            files=len(result.generated_files),
            errors=len(result.errors),
            cancelled=result.cancelled
        )
        return result

    async def _run(
        self,
        process_manager: ProcessManager,
        result: GenerationResult,
        cancel_event: Optional[asyncio.Event]
    ) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            if not result.cancelled:
                logger.info("generation_cancelled", next_process_manager=process_manager.name)
            result.cancelled = True
            return False

        try:
            files = await self.generate_process_manager(process_manager)
        except GenerationError as e:
            self.context.record_error(
                PROCESS_MANAGER_FAILED.format(name=process_manager.name, error=e),
                process_manager=process_manager.name
            )
            return True

        if files is None:
            result.skipped.append(process_manager.name)
        else:
            result.processed.append(process_manager.name)
            result.generated_files.extend(files)
        return True

    async def generate_process_manager(self, process_manager: ProcessManager) -> Optional[List[Path]]:
        """Build and save the documents of one process manager.

        The workflow definition and the parameters file are built and saved
        independently; a failure in one is recorded and the other is still
        written. Returns the written files, or None when the process manager
        was skipped.
        """
        if not process_manager.snippets:
            logger.warning("process_manager_has_no_snippets", process_manager=process_manager.name)
            return None
        if process_manager.workflow_model is None:
            logger.warning("process_manager_has_no_workflow_model", process_manager=process_manager.name)
            return None
        if not self.context.template_folders:
            logger.warning("no_template_folders", process_manager=process_manager.name)
            return None

        if not await self.repository.directory_exists(self.context.generation_folder):
            logger.debug("creating_generation_folder", path=str(self.context.generation_folder))
            try:
                await self.repository.create_directory(self.context.generation_folder)
            except OSError as e:
                raise OutputWriteError(str(self.context.generation_folder), str(e)) from e

        resource_template = process_manager.find_resource_template(RESOURCE_TYPE_AZURE_LOGIC_APP)
        if resource_template is None:
            logger.warning(
                "resource_template_not_found",
                process_manager=process_manager.name,
                resource_type=RESOURCE_TYPE_AZURE_LOGIC_APP
            )
            return None

        scope = ConversionScope(
            process_manager=process_manager,
            resource_template=resource_template,
            resolver=SnippetResolver(process_manager.snippets),
            loader=self.loader,
            context=self.context
        )

        logger.info("generating_workflow", process_manager=process_manager.name)
        files = []
        for build, parameter in (
            (self._build_workflow_definition, PARAMETER_WORKFLOW_DEFINITION_FILE),
            (self._build_parameters_definition, PARAMETER_WORKFLOW_PARAMETERS_FILE),
        ):
            try:
                document = await build(scope)
                path = await self._save(scope, document, parameter) if document is not None else None
            except GenerationError as e:
                self.context.record_error(
                    DOCUMENT_FAILED.format(document=parameter, name=process_manager.name, error=e),
                    process_manager=process_manager.name
                )
                continue
            if path is not None:
                files.append(path)

        return files

    # ========================================================================
    # WORKFLOW DEFINITION
    # ========================================================================

    async def _build_workflow_definition(self, scope: ConversionScope) -> Optional[Document]:
        snippet = scope.resolver.find_exact(RESOURCE_TYPE_WORKFLOW_DEFINITION)
        if snippet is None:
            logger.warning(
                "process_manager_snippet_not_found",
                process_manager=scope.process_manager.name,
                resource_type=RESOURCE_TYPE_WORKFLOW_DEFINITION
            )
            return None

        workflow_model = scope.process_manager.workflow_model
        skeleton = await scope.load(workflow_model, snippet)
        if skeleton is None:
            return None

        document = Document(skeleton)
        await self._add_parameters(scope, document)
        await self._add_properties(scope, document)
        await self._add_triggers(scope, document)
        await self._add_variables(scope, document)
        await self._add_messages(scope, document)

        actions = document.resolve_object(PATH_DEFINITION_ACTIONS)
        if actions is None:
            scope.missing_node(PATH_DEFINITION_ACTIONS)
        else:
            await self._add_workflow_activities(scope, workflow_model, actions)
            self.binder.bind(scope.process_manager, actions)

        return document

    def _target(self, scope: ConversionScope, document: Document, path: str) -> Optional[Dict[str, Any]]:
        node = document.resolve_object(path)
        if node is None:
            scope.missing_node(path)
        return node

    def _add_first(
        self,
        scope: ConversionScope,
        document: Document,
        fragment: Dict[str, Any],
        key: str,
        path: str
    ) -> None:
        """Flat-append the first property of ``fragment[key]`` at ``path``."""
        if key not in fragment:
            return
        target = self._target(scope, document, path)
        prop = first_property(fragment[key])
        if target is not None and prop is not None:
            if scope.insert(target, prop[0], prop[1], path):
                logger.debug("added_property", key=key, name=prop[0], process_manager=scope.process_manager.name)

    async def _add_parameters(self, scope: ConversionScope, document: Document) -> None:
        workflow_model = scope.process_manager.workflow_model
        for snippet in scope.resolver.find_all(RESOURCE_TYPE_WORKFLOW_PARAMETER):
            fragment = await scope.load(workflow_model, snippet)
            if not fragment:
                continue

            self._add_first(scope, document, fragment, SNIPPET_WORKFLOW_DEFINITION_PARAMETER, PATH_DEFINITION_PARAMETERS)

            if SNIPPET_WORKFLOW_PARAMETER in fragment:
                target = self._target(scope, document, PATH_WORKFLOW_RESOURCE_PARAMETERS)
                prop = first_property(fragment[SNIPPET_WORKFLOW_PARAMETER])
                if target is not None and prop is not None:
                    self._merge_workflow_parameter(target, prop[0], prop[1])

            self._add_first(scope, document, fragment, SNIPPET_ARM_TEMPLATE_PARAMETER, PATH_ARM_PARAMETERS)

    @staticmethod
    def _merge_workflow_parameter(parameters: Dict[str, Any], name: str, parameter: Any) -> None:
        if name not in parameters:
            parameters[name] = parameter
            logger.debug("added_workflow_parameter", parameter=name)
            return

        existing = select(parameters[name], "$..value")
        incoming = select(parameter, "$..value")
        if isinstance(existing, dict) and isinstance(incoming, dict):
            added = merge_missing(existing, incoming)
            logger.debug("merged_workflow_parameter", parameter=name, added=added)

    async def _add_properties(self, scope: ConversionScope, document: Document) -> None:
        workflow_model = scope.process_manager.workflow_model
        for snippet in scope.resolver.find_all(RESOURCE_TYPE_WORKFLOW_PROPERTY):
            fragment = await scope.load(workflow_model, snippet)
            if not fragment:
                continue
            self._add_first(scope, document, fragment, SNIPPET_WORKFLOW_RESOURCE_PROPERTY, PATH_WORKFLOW_RESOURCE)
            self._add_first(scope, document, fragment, SNIPPET_WORKFLOW_PROPERTY, PATH_WORKFLOW_RESOURCE_PROPERTIES)

    async def _add_triggers(self, scope: ConversionScope, document: Document) -> None:
        trigger_snippets = scope.resolver.find_prefixed(RESOURCE_TYPE_WORKFLOW_CHANNEL_TRIGGER)
        for channel in scope.process_manager.workflow_model.activator_channels:
            for snippet in trigger_snippets:
                fragment = await scope.load(channel, snippet, channel)
                if not fragment or SNIPPET_WORKFLOW_TRIGGER not in fragment:
                    continue

                triggers = self._target(scope, document, PATH_DEFINITION_TRIGGERS)
                trigger = first_property(fragment[SNIPPET_WORKFLOW_TRIGGER])
                if triggers is None or trigger is None:
                    continue

                if append_if_absent(triggers, trigger[0], trigger[1]):
                    logger.debug("added_trigger", trigger=trigger[0], channel=channel.name)
                else:
                    logger.debug("trigger_already_present", trigger=trigger[0], channel=channel.name)

    async def _add_variables(self, scope: ConversionScope, document: Document) -> None:
        workflow_model = scope.process_manager.workflow_model
        for snippet in scope.resolver.find_all(RESOURCE_TYPE_WORKFLOW_VARIABLE):
            fragment = await scope.load(workflow_model, snippet)
            if not fragment:
                continue
            self._add_first(scope, document, fragment, SNIPPET_WORKFLOW_DEFINITION_VARIABLE, PATH_DEFINITION_ACTIONS)
            self._add_first(scope, document, fragment, SNIPPET_ARM_TEMPLATE_VARIABLE, PATH_ARM_VARIABLES)

        await self._add_model_declarations(
            scope, document, "variables",
            RESOURCE_TYPE_WORKFLOW_VARIABLE_PLACEHOLDER, SNIPPET_WORKFLOW_DEFINITION_VARIABLE
        )

    async def _add_messages(self, scope: ConversionScope, document: Document) -> None:
        workflow_model = scope.process_manager.workflow_model
        for snippet in scope.resolver.find_all(RESOURCE_TYPE_WORKFLOW_MESSAGE):
            fragment = await scope.load(workflow_model, snippet)
            if not fragment:
                continue
            self._add_first(scope, document, fragment, SNIPPET_WORKFLOW_DEFINITION_MESSAGE, PATH_DEFINITION_ACTIONS)

        await self._add_model_declarations(
            scope, document, "messages",
            RESOURCE_TYPE_WORKFLOW_MESSAGE_PLACEHOLDER, SNIPPET_WORKFLOW_DEFINITION_MESSAGE
        )

    async def _add_model_declarations(
        self,
        scope: ConversionScope,
        document: Document,
        collection: str,
        placeholder: str,
        key: str
    ) -> None:
        """Render the variables or messages of every container into the root actions."""
        declarations = [
            item
            for container in scope.process_manager.workflow_model.walk()
            for item in getattr(container, collection)
        ]
        if not declarations:
            return

        root_actions = self._target(scope, document, PATH_DEFINITION_ACTIONS)
        if root_actions is None:
            return

        snippet = scope.resolver.find_exact(placeholder)
        if snippet is None:
            logger.debug("placeholder_snippet_not_found", placeholder=placeholder, count=len(declarations))
            return

        for item in declarations:
            fragment = await scope.load(item, snippet)
            prop = first_property(fragment.get(key)) if fragment else None
            if prop is not None and scope.insert(root_actions, prop[0], prop[1], PATH_DEFINITION_ACTIONS):
                logger.debug("added_declaration", collection=collection, name=prop[0])

    async def _add_workflow_activities(
        self,
        scope: ConversionScope,
        container: WorkflowActivityContainer,
        parent: Dict[str, Any]
    ) -> None:
        handler = self.container_converters.get(container.type)
        converted, child = await handler(scope, container, parent)
        if not converted:
            logger.debug("container_not_converted", container=container.name, container_type=container.type)
            return

        await add_prebuilt_actions(scope, container, child)

        for activity in container.activities:
            if isinstance(activity, WorkflowActivityContainer):
                await self._add_workflow_activities(scope, activity, child)
            else:
                activity_handler = self.activity_converters.get(activity.type)
                await activity_handler(scope, activity, child)

    # ========================================================================
    # PARAMETERS DEFINITION
    # ========================================================================

    async def _build_parameters_definition(self, scope: ConversionScope) -> Optional[Document]:
        snippet = scope.resolver.find_exact(RESOURCE_TYPE_WORKFLOW_PARAMETERS_DEFINITION)
        if snippet is None:
            logger.warning(
                "process_manager_snippet_not_found",
                process_manager=scope.process_manager.name,
                resource_type=RESOURCE_TYPE_WORKFLOW_PARAMETERS_DEFINITION
            )
            return None

        workflow_model = scope.process_manager.workflow_model
        skeleton = await scope.load(workflow_model, snippet)
        if skeleton is None:
            return None

        document = Document(skeleton)
        parameter_snippets = scope.resolver.find_all(RESOURCE_TYPE_WORKFLOW_PARAMETER)
        if not parameter_snippets:
            return document

        parameters = self._target(scope, document, PATH_ARM_PARAMETERS)
        if parameters is None:
            return document

        for parameter_snippet in parameter_snippets:
            fragment = await scope.load(workflow_model, parameter_snippet)
            prop = first_property(fragment.get(SNIPPET_ARM_PARAMETER)) if fragment else None
            if prop is not None:
                scope.insert(parameters, prop[0], prop[1], PATH_ARM_PARAMETERS)
        return document

    async def _save(self, scope: ConversionScope, document: Document, parameter: str) -> Optional[Path]:
        file_path = scope.resource_template.parameters.get(parameter)
        if not file_path:
            logger.warning(
                "resource_template_parameter_missing",
                process_manager=scope.process_manager.name,
                parameter=parameter
            )
            return None

        output_file = self.context.generation_folder / file_path
        try:
            await self.repository.write_json_file(output_file, document.root, indent=self.json_indent)
        except OSError as e:
            raise OutputWriteError(str(output_file), str(e)) from e
        logger.info("saved_workflow", path=str(output_file), process_manager=scope.process_manager.name)
        return output_file
