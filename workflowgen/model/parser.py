import yaml
from typing import Dict, Any, List
from dataclasses import dataclass
from pathlib import Path
import structlog

from workflowgen.model.target import Application, ProcessManager, TargetModel

logger = structlog.get_logger(__name__)


@dataclass
class ValidationError:
    message: str
    path: str
    severity: str = "error"


class ModelParser:
    """Load an already-built target model from a YAML (or JSON) document."""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []

    def parse_file(self, model_file: Path) -> TargetModel:
        """Parse target model from file"""
        with open(model_file, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content)

    def parse_string(self, content: str) -> TargetModel:
        """Parse target model from a YAML string"""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}")

        if not isinstance(data, dict):
            raise ValueError("Target model must be a mapping")

        self.errors.clear()
        self.warnings.clear()

        model = TargetModel(name=data.get('name', 'target'))
        for index, app_data in enumerate(data.get('applications', []) or []):
            application = self._parse_application(app_data, f"applications[{index}]")
            if application is not None:
                model.applications.append(application)

        self._validate_model(model)

        for warning in self.warnings:
            logger.warning("model_validation_warning", path=warning.path, message=warning.message)

        if self.errors:
            error_messages = [f"{e.path}: {e.message}" for e in self.errors]
            raise ValueError("Validation errors:\n" + "\n".join(error_messages))

        return model

    def _parse_application(self, data: Dict[str, Any], path: str):
        name = data.get('name')
        if not name:
            self.errors.append(ValidationError(message="Application name is required", path=path))
            return None

        application = Application(name=name)
        for index, pm_data in enumerate(data.get('process_managers', []) or []):
            pm_path = f"{path}.process_managers[{index}]"
            if not self._check_process_manager(pm_data, pm_path):
                continue
            application.intermediaries.append(ProcessManager.from_dict(pm_data))

        return application

    def _check_process_manager(self, data: Dict[str, Any], path: str) -> bool:
        valid = True
        if not data.get('name'):
            self.errors.append(ValidationError(message="Process manager name is required", path=path))
            return False

        for index, snippet in enumerate(data.get('snippets', []) or []):
            for required in ('resource_type', 'file'):
                if not snippet.get(required):
                    self.errors.append(ValidationError(
                        message=f"Snippet field '{required}' is required",
                        path=f"{path}.snippets[{index}]"
                    ))
                    valid = False

        for index, resource in enumerate(data.get('resources', []) or []):
            if not resource.get('resource_type'):
                self.errors.append(ValidationError(
                    message="Resource field 'resource_type' is required",
                    path=f"{path}.resources[{index}]"
                ))
                valid = False

        workflow_model = data.get('workflow_model')
        if workflow_model is not None:
            valid = self._check_activities(workflow_model, f"{path}.workflow_model") and valid

        return valid

    def _check_activities(self, data: Dict[str, Any], path: str) -> bool:
        valid = True
        for index, activity in enumerate(data.get('activities', []) or []):
            activity_path = f"{path}.activities[{index}]"
            if not activity.get('name'):
                self.errors.append(ValidationError(message="Activity name is required", path=activity_path))
                valid = False
                continue
            if not activity.get('type'):
                self.warnings.append(ValidationError(
                    message=f"Activity '{activity['name']}' has no type, default conversion will be used",
                    path=activity_path,
                    severity="warning"
                ))
            if 'activities' in activity:
                valid = self._check_activities(activity, activity_path) and valid

        for collection in ('variables', 'messages', 'channels'):
            for index, item in enumerate(data.get(collection, []) or []):
                if not item.get('name'):
                    self.errors.append(ValidationError(
                        message="Name is required",
                        path=f"{path}.{collection}[{index}]"
                    ))
                    valid = False

        return valid

    def _validate_model(self, model: TargetModel) -> None:
        """Validate the complete target model"""
        names = [pm.name for pm in model.process_managers()]
        duplicates = set([name for name in names if names.count(name) > 1])
        for duplicate in duplicates:
            self.errors.append(ValidationError(
                message=f"Duplicate process manager name: {duplicate}",
                path=f"process_managers.{duplicate}"
            ))

        for pm in model.process_managers():
            if not pm.snippets:
                self.warnings.append(ValidationError(
                    message=f"Process manager '{pm.name}' has no snippets and will be skipped",
                    path=f"process_managers.{pm.name}",
                    severity="warning"
                ))
            if pm.workflow_model is None:
                self.warnings.append(ValidationError(
                    message=f"Process manager '{pm.name}' has no workflow model and will be skipped",
                    path=f"process_managers.{pm.name}",
                    severity="warning"
                ))


def parse_model_file(model_file: Path) -> TargetModel:
    """Convenience function to parse a target model from file"""
    parser = ModelParser()
    return parser.parse_file(model_file)


def parse_model_string(content: str) -> TargetModel:
    """Convenience function to parse a target model from string"""
    parser = ModelParser()
    return parser.parse_string(content)
