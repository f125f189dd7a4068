"""Sequential runAfter binding of generated actions."""

from typing import Any, Dict

import structlog

from workflowgen.generator.context import GenerationContext
from workflowgen.generator.messages import INVALID_ACTIONS_NODE
from workflowgen.model.constants import PATH_ACTIONS, RUN_AFTER, RUN_AFTER_SUCCEEDED
from workflowgen.model.target import ProcessManager

logger = structlog.get_logger(__name__)


class ActionBinder:
    """Chain each action to the one before it in its scope.

    Scopes are the actions object handed to ``bind`` and every ``actions``
    object found directly beneath an action. Switch branches
    (``cases.*.actions`` and ``default.actions``) are only visited when
    ``bind_branches`` is set.
    """

    def __init__(self, context: GenerationContext, bind_branches: bool = False):
        if context is None:
            raise ValueError("context must not be None")
        self.context = context
        self.bind_branches = bind_branches

    def bind(self, process_manager: ProcessManager, actions: Dict[str, Any]) -> int:
        """Bind a scope and its nested scopes; returns the number of edges added."""
        logger.debug("binding_actions", process_manager=process_manager.name)
        return self._bind_scope(process_manager, actions)

    def _bind_scope(self, process_manager: ProcessManager, actions: Dict[str, Any]) -> int:
        added = 0
        names = list(actions.keys())

        for previous, current in zip(names, names[1:]):
            action = actions[current]
            if not isinstance(action, dict):
                continue

            run_after = action.setdefault(RUN_AFTER, {})
            if not isinstance(run_after, dict):
                logger.warning("run_after_not_an_object", action=current, process_manager=process_manager.name)
                continue

            if previous not in run_after:
                run_after[previous] = [RUN_AFTER_SUCCEEDED]
                added += 1
                logger.debug("bound_action", action=current, run_after=previous)

        for name, action in actions.items():
            if not isinstance(action, dict):
                continue

            if "actions" in action:
                nested = action["actions"]
                if isinstance(nested, dict):
                    added += self._bind_scope(process_manager, nested)
                else:
                    self.context.record_error(
                        INVALID_ACTIONS_NODE.format(action=name, name=process_manager.name),
                        process_manager=process_manager.name,
                        path=PATH_ACTIONS
                    )

            if self.bind_branches:
                added += self._bind_branches(process_manager, action)

        return added

    def _bind_branches(self, process_manager: ProcessManager, action: Dict[str, Any]) -> int:
        added = 0
        cases = action.get("cases")
        if isinstance(cases, dict):
            for case in cases.values():
                if isinstance(case, dict) and isinstance(case.get("actions"), dict):
                    added += self._bind_scope(process_manager, case["actions"])

        default = action.get("default")
        if isinstance(default, dict) and isinstance(default.get("actions"), dict):
            added += self._bind_scope(process_manager, default["actions"])
        return added
