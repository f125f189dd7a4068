"""
End-to-end tests for WorkflowGenerator against a real snippet library.

Tests cover:
- Sequential runAfter ordering of generated actions
- Decision branches under a Switch
- Parameter merge, properties and trigger dedup
- Structural-absence recovery and placeholder fallback
- Persistence, isolation of failing process managers and cancellation
- The command line
"""

import asyncio
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from helpers import BASE_SNIPPETS, make_generator, make_process_manager, write_snippets
from workflowgen.generator.engine import WorkflowGenerator
from workflowgen.model.constants import PATH_ARM_PARAMETERS, PATH_DEFINITION_PARAMETERS


def definition_of(document):
    return document["resources"][0]["properties"]["definition"]


async def generate_one(process_manager, snippet_folder, output_folder, **kwargs):
    generator = make_generator([process_manager], [snippet_folder], output_folder, **kwargs)
    result = await generator.generate()
    workflow = json.loads((output_folder / process_manager.name / "workflow.json").read_text())
    return generator, result, workflow


SEQUENCE_MODEL = {
    "name": "Main",
    "activities": [
        {"name": "A", "type": "Task"},
        {"name": "B", "type": "Task"},
        {"name": "C", "type": "Task"},
    ],
}

DECISION_MODEL = {
    "name": "Main",
    "activities": [
        {"name": "Start", "type": "Task"},
        {
            "name": "Check",
            "type": "Decision",
            "activities": [
                {"name": "Case1", "type": "DecisionBranch", "activities": [{"name": "X", "type": "Task"}]},
                {"name": "Case2", "type": "DecisionBranch", "activities": [{"name": "Y", "type": "Task"}]},
                {"name": "Else", "type": "DecisionBranch", "activities": [{"name": "Z", "type": "Task"}]},
            ],
        },
    ],
}

DECISION_SNIPPETS = [
    ("workflow.activitycontainer.decision", "decision.json.j2"),
    ("workflow.activitycontainer.decisionbranch", "branch.json.j2"),
]


# ============================================================================
# ACTIONS
# ============================================================================

class TestActions:
    @pytest.mark.asyncio
    async def test_sequential_ordering(self, snippet_folder, output_folder):
        pm = make_process_manager(workflow=SEQUENCE_MODEL)

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        root = definition_of(workflow)["actions"]
        assert list(root) == ["Main"]
        actions = root["Main"]["actions"]
        assert list(actions) == ["A", "B", "C"]
        assert "runAfter" not in actions["A"]
        assert actions["B"]["runAfter"] == {"A": ["Succeeded"]}
        assert actions["C"]["runAfter"] == {"B": ["Succeeded"]}

    @pytest.mark.asyncio
    async def test_binding_twice_is_stable(self, snippet_folder, output_folder):
        pm = make_process_manager(workflow=SEQUENCE_MODEL)
        _, _, workflow = await generate_one(pm, snippet_folder, output_folder)
        root = definition_of(workflow)["actions"]
        before = json.dumps(root)

        generator = make_generator([pm], [snippet_folder], output_folder)
        generator.binder.bind(pm, root)

        assert json.dumps(root) == before

    @pytest.mark.asyncio
    async def test_decision_branches(self, snippet_folder, output_folder):
        pm = make_process_manager(workflow=DECISION_MODEL, extra_snippets=DECISION_SNIPPETS)

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        actions = definition_of(workflow)["actions"]["Main"]["actions"]
        assert list(actions) == ["Start", "Check"]
        assert actions["Check"]["runAfter"] == {"Start": ["Succeeded"]}

        switch = actions["Check"]
        assert list(switch["cases"]) == ["Case1", "Case2"]
        assert list(switch["cases"]["Case1"]["actions"]) == ["X"]
        assert list(switch["cases"]["Case2"]["actions"]) == ["Y"]
        assert list(switch["default"]["actions"]) == ["Z"]
        assert "Else" not in switch["cases"]

    @pytest.mark.asyncio
    async def test_placeholder_fallback(self, snippet_folder, output_folder):
        pm = make_process_manager(workflow={"name": "Main", "activities": [{"name": "Only", "type": "Unknown"}]})

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        assert definition_of(workflow)["actions"]["Main"]["actions"] == {
            "Only": {"type": "Compose", "inputs": "Only"}
        }

    @pytest.mark.asyncio
    async def test_no_snippet_no_action_no_error(self, snippet_folder, output_folder):
        snippets = [
            ("workflow.definition", "workflow.json.j2"),
            ("workflow.activitycontainer.workflow", "scope.json.j2"),
        ]
        pm = make_process_manager(
            workflow={"name": "Main", "activities": [{"name": "Only", "type": "Unknown"}]},
            snippets=snippets,
        )

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.errors == []
        assert definition_of(workflow)["actions"]["Main"]["actions"] == {}

    @pytest.mark.asyncio
    async def test_prebuilt_and_channel_actions(self, snippet_folder, output_folder):
        workflow_model = {
            "name": "Main",
            "channels": [{"name": "In", "activator": True}, {"name": "Out"}],
            "activities": [
                {"name": "Get", "type": "Receive", "channel": "In"},
                {"name": "Put", "type": "Send", "channel": "Out"},
            ],
        }
        pm = make_process_manager(workflow=workflow_model, extra_snippets=[
            ("workflow.activitycontainer.workflow.init", "init.json.j2"),
            ("workflow.channel.receive.message", "receive.json.j2"),
            ("workflow.channel.send.message", "send.json.j2"),
        ])

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        actions = definition_of(workflow)["actions"]["Main"]["actions"]
        assert list(actions) == ["Initialize_Main", "Receive_Get", "Send_Put"]
        assert actions["Receive_Get"]["inputs"] == "In"
        assert actions["Send_Put"]["inputs"] == "Out"
        assert actions["Send_Put"]["runAfter"] == {"Receive_Get": ["Succeeded"]}


# ============================================================================
# DECLARATIONS
# ============================================================================

class TestDeclarations:
    @pytest.mark.asyncio
    async def test_parameter_merge(self, snippet_folder, output_folder):
        pm = make_process_manager(extra_snippets=[
            ("workflow.parameter", "parameter_a.json"),
            ("workflow.parameter", "parameter_b.json"),
        ])

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        parameters = workflow["resources"][0]["properties"]["parameters"]
        assert parameters["P"]["value"] == {"a": 1, "b": 2}
        assert definition_of(workflow)["parameters"] == {"P": {"type": "object"}}

        arm_parameters = json.loads((output_folder / pm.name / "workflow.parameters.json").read_text())
        assert arm_parameters["parameters"] == {"P": {"value": {}}}

    @pytest.mark.asyncio
    async def test_parameter_merge_first_write_wins(self, snippet_folder, output_folder):
        pm = make_process_manager(extra_snippets=[
            ("workflow.parameter", "parameter_a.json"),
            ("workflow.parameter", "parameter_a9.json"),
        ])

        _, _, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert workflow["resources"][0]["properties"]["parameters"]["P"]["value"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_definition_parameter_duplicate_is_an_error(self, snippet_folder, output_folder):
        pm = make_process_manager(extra_snippets=[
            ("workflow.parameter", "parameter_a.json"),
            ("workflow.parameter", "parameter_a.json"),
        ])

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        # once in the workflow definition, once in the parameters file
        assert [e.path for e in result.errors] == [PATH_DEFINITION_PARAMETERS, PATH_ARM_PARAMETERS]
        assert definition_of(workflow)["parameters"] == {"P": {"type": "object"}}
        assert (output_folder / pm.name / "workflow.parameters.json").exists()

    @pytest.mark.asyncio
    async def test_properties(self, snippet_folder, output_folder):
        pm = make_process_manager(extra_snippets=[("workflow.property", "property.json")])

        _, _, workflow = await generate_one(pm, snippet_folder, output_folder)

        resource = workflow["resources"][0]
        assert resource["location"] == "westeurope"
        assert resource["properties"]["state"] == "Enabled"

    @pytest.mark.asyncio
    async def test_trigger_dedup(self, snippet_folder, output_folder):
        workflow_model = {
            "name": "Main",
            "channels": [{"name": "In", "activator": True}, {"name": "Also", "activator": True}, {"name": "Out"}],
        }
        pm = make_process_manager(workflow=workflow_model, extra_snippets=[
            ("workflow.channel.trigger.http", "trigger.json.j2"),
            ("workflow.channel.trigger.request", "trigger.json.j2"),
        ])

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        assert definition_of(workflow)["triggers"] == {"manual": {"type": "Request", "kind": "Http"}}

    @pytest.mark.asyncio
    async def test_variables_and_messages_at_root(self, snippet_folder, output_folder):
        workflow_model = {
            "name": "Main",
            "variables": [{"name": "count", "data_type": "integer"}],
            "activities": [
                {
                    "name": "Inner",
                    "type": "Sequence",
                    "variables": [{"name": "flag", "data_type": "boolean"}],
                    "messages": [{"name": "order"}],
                    "activities": [{"name": "Work", "type": "Task"}],
                },
            ],
        }
        pm = make_process_manager(workflow=workflow_model, extra_snippets=[
            ("workflow.placeholder.activitycontainer", "scope.json.j2"),
            ("workflow.placeholder.variable", "variable.json.j2"),
            ("workflow.placeholder.message", "message.json.j2"),
        ])

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        assert result.success
        root = definition_of(workflow)["actions"]
        assert list(root) == ["Initialize_count", "Initialize_flag", "Initialize_order_Message", "Main"]
        assert root["Initialize_flag"]["runAfter"] == {"Initialize_count": ["Succeeded"]}
        assert root["Main"]["runAfter"] == {"Initialize_order_Message": ["Succeeded"]}
        assert list(root["Main"]["actions"]["Inner"]["actions"]) == ["Work"]

    @pytest.mark.asyncio
    async def test_missing_path_recovery(self, snippet_folder, output_folder):
        workflow_model = {
            "name": "Main",
            "channels": [{"name": "In", "activator": True}],
            "variables": [{"name": "count"}],
            "activities": [{"name": "A", "type": "Task"}],
        }
        pm = make_process_manager(
            workflow=workflow_model,
            snippets=[
                ("workflow.definition", "workflow_no_parameters.json.j2"),
                ("workflow.activitycontainer.workflow", "scope.json.j2"),
                ("workflow.placeholder.activity", "activity.json.j2"),
                ("workflow.parameter", "parameter_a.json"),
                ("workflow.channel.trigger.http", "trigger.json.j2"),
                ("workflow.placeholder.variable", "variable.json.j2"),
            ],
        )

        generator, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        errors = generator.context.errors_for(pm.name)
        assert len(errors) == 1
        assert errors[0].path == PATH_DEFINITION_PARAMETERS
        assert pm.name in errors[0].message

        definition = definition_of(workflow)
        assert "manual" in definition["triggers"]
        assert "Initialize_count" in definition["actions"]
        assert list(definition["actions"]["Main"]["actions"]) == ["A"]
        assert workflow["resources"][0]["properties"]["parameters"]["P"]["value"] == {"a": 1}


# ============================================================================
# RUN
# ============================================================================

class TestGeneratorRun:
    @pytest.mark.asyncio
    async def test_files_written(self, snippet_folder, output_folder):
        pm = make_process_manager()
        generator = make_generator([pm], [snippet_folder], output_folder)

        result = await generator.generate()

        assert result.processed == [pm.name]
        assert result.generated_files == [
            output_folder / pm.name / "workflow.json",
            output_folder / pm.name / "workflow.parameters.json",
        ]
        for path in result.generated_files:
            assert isinstance(json.loads(Path(path).read_text()), dict)

    @pytest.mark.asyncio
    async def test_override_folder(self, tmp_path, snippet_folder, output_folder):
        overrides = write_snippets(tmp_path / "overrides", {
            "activity.json.j2": '{"workflowDefinitionAction": {"{{ node.name }}": {"type": "Override"}}}',
        })
        pm = make_process_manager(workflow={"name": "Main", "activities": [{"name": "A", "type": "Task"}]})
        generator = make_generator([pm], [overrides, snippet_folder], output_folder)

        await generator.generate()

        workflow = json.loads((output_folder / pm.name / "workflow.json").read_text())
        assert definition_of(workflow)["actions"]["Main"]["actions"]["A"]["type"] == "Override"

    @pytest.mark.asyncio
    async def test_skipped_process_managers(self, snippet_folder, output_folder):
        no_snippets = make_process_manager(name="Empty", snippets=[])
        no_model = make_process_manager(name="NoModel")
        no_model.workflow_model = None
        no_template = make_process_manager(name="NoTemplate")
        no_template.resources = []
        generator = make_generator([no_snippets, no_model, no_template], [snippet_folder], output_folder)

        result = await generator.generate()

        assert result.skipped == ["Empty", "NoModel", "NoTemplate"]
        assert result.generated_files == []
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_failing_process_manager_does_not_stop_others(self, snippet_folder, output_folder):
        broken = make_process_manager(
            name="Broken",
            workflow={"name": "Main", "activities": [{"name": "A", "type": "Bad"}]},
            extra_snippets=[("workflow.activity.bad", "broken.json.j2")],
        )
        healthy = make_process_manager(name="Healthy")
        generator = make_generator([broken, healthy], [snippet_folder], output_folder)

        result = await generator.generate()

        assert result.processed == ["Broken", "Healthy"]
        assert len(result.errors) == 1
        assert result.errors[0].process_manager == "Broken"
        assert "broken.json.j2" in result.errors[0].message
        assert (output_folder / "Healthy" / "workflow.json").exists()
        assert not (output_folder / "Broken" / "workflow.json").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_concurrent", [1, 2])
    async def test_template_runtime_error_is_contained(
        self, snippet_folder, output_folder, max_concurrent
    ):
        (snippet_folder / "divide.json.j2").write_text(
            '{"workflowDefinitionAction": {"X": {"inputs": {{ 1 // 0 }}}}}'
        )
        bad = make_process_manager(
            name="Bad",
            workflow={"name": "Main", "activities": [{"name": "A", "type": "Divide"}]},
            extra_snippets=[("workflow.activity.divide", "divide.json.j2")],
        )
        good = make_process_manager(name="Good", workflow=SEQUENCE_MODEL)
        generator = make_generator([bad, good], [snippet_folder], output_folder, max_concurrent=max_concurrent)

        result = await generator.generate()

        assert "Good" in result.processed
        assert [e.process_manager for e in result.errors] == ["Bad"]
        assert "ZeroDivisionError" in result.errors[0].message
        good_workflow = json.loads((output_folder / "Good" / "workflow.json").read_text())
        assert list(definition_of(good_workflow)["actions"]["Main"]["actions"]) == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_undecodable_snippet_is_contained(self, snippet_folder, output_folder):
        (snippet_folder / "latin.json").write_bytes(b'{"workflowDefinitionAction": {"\xe9t\xe9": {}}}')
        bad = make_process_manager(
            name="Bad",
            workflow={"name": "Main", "activities": [{"name": "A", "type": "Latin"}]},
            extra_snippets=[("workflow.activity.latin", "latin.json")],
        )
        good = make_process_manager(name="Good")
        generator = make_generator([bad, good], [snippet_folder], output_folder)

        result = await generator.generate()

        assert result.processed == ["Bad", "Good"]
        assert [e.process_manager for e in result.errors] == ["Bad"]
        assert "latin.json" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_failed_workflow_still_writes_parameters(self, snippet_folder, output_folder):
        broken = make_process_manager(
            name="Broken",
            workflow={"name": "Main", "activities": [{"name": "A", "type": "Bad"}]},
            extra_snippets=[("workflow.activity.bad", "broken.json.j2")],
        )
        generator = make_generator([broken], [snippet_folder], output_folder)

        files = await generator.generate_process_manager(broken)

        assert files == [output_folder / "Broken" / "workflow.parameters.json"]
        errors = generator.context.errors_for("Broken")
        assert len(errors) == 1
        assert "workflow_definition_file" in errors[0].message

    @pytest.mark.asyncio
    async def test_failed_parameters_still_writes_workflow(self, snippet_folder, output_folder):
        (snippet_folder / "badparams.json").write_text('{"parameters": ')
        snippets = [
            ("workflow.parametersdefinition", "badparams.json") if resource_type == "workflow.parametersdefinition"
            else (resource_type, file_name)
            for resource_type, file_name in BASE_SNIPPETS
        ]
        pm = make_process_manager(snippets=snippets)
        generator = make_generator([pm], [snippet_folder], output_folder)

        result = await generator.generate()

        workflow_file = output_folder / pm.name / "workflow.json"
        assert result.processed == [pm.name]
        assert result.generated_files == [workflow_file]
        assert workflow_file.exists()
        assert not (output_folder / pm.name / "workflow.parameters.json").exists()
        assert len(result.errors) == 1
        assert "workflow_parameters_file" in result.errors[0].message
        assert "badparams.json" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_duplicate_container_name_keeps_children_apart(self, snippet_folder, output_folder):
        workflow_model = {
            "name": "Main",
            "activities": [
                {"name": "Loop", "type": "Sequence", "activities": [{"name": "A", "type": "Task"}]},
                {"name": "Loop", "type": "Sequence", "activities": [{"name": "B", "type": "Task"}]},
            ],
        }
        pm = make_process_manager(
            workflow=workflow_model,
            extra_snippets=[("workflow.placeholder.activitycontainer", "scope.json.j2")],
        )

        _, result, workflow = await generate_one(pm, snippet_folder, output_folder)

        actions = definition_of(workflow)["actions"]["Main"]["actions"]
        assert list(actions) == ["Loop"]
        assert list(actions["Loop"]["actions"]) == ["A"]
        assert len(result.errors) == 1
        assert "'Loop'" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_unwritable_generation_folder_is_recorded(self, tmp_path, snippet_folder):
        blocked = tmp_path / "blocked"
        blocked.write_text("")
        generator = make_generator([make_process_manager()], [snippet_folder], blocked)

        result = await generator.generate()

        assert result.processed == []
        assert len(result.errors) == 1
        assert "Unable to write" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_errors_reported_per_run(self, snippet_folder, output_folder):
        broken = make_process_manager(
            name="Broken",
            workflow={"name": "Main", "activities": [{"name": "A", "type": "Bad"}]},
            extra_snippets=[("workflow.activity.bad", "broken.json.j2")],
        )
        generator = make_generator([broken], [snippet_folder], output_folder)

        first = await generator.generate()
        second = await generator.generate()

        assert len(first.errors) == 1
        assert len(second.errors) == 1
        assert len(generator.context.errors) == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, snippet_folder, output_folder):
        cancel = asyncio.Event()
        cancel.set()
        generator = make_generator([make_process_manager()], [snippet_folder], output_folder)

        result = await generator.generate(cancel_event=cancel)

        assert result.cancelled is True
        assert result.processed == []
        assert not output_folder.exists()

    @pytest.mark.asyncio
    async def test_cancel_stops_remaining_process_managers(self, snippet_folder, output_folder):
        cancel = asyncio.Event()
        first = make_process_manager(name="First")
        second = make_process_manager(name="Second")
        generator = make_generator([first, second], [snippet_folder], output_folder)
        original = generator.generate_process_manager

        async def generate_then_cancel(process_manager):
            files = await original(process_manager)
            cancel.set()
            return files

        generator.generate_process_manager = generate_then_cancel

        result = await generator.generate(cancel_event=cancel)

        assert result.processed == ["First"]
        assert result.cancelled is True

    @pytest.mark.asyncio
    async def test_concurrent_generation_shares_unique_ids(self, snippet_folder, output_folder):
        process_managers = [make_process_manager(name=f"PM{i}", workflow=SEQUENCE_MODEL) for i in range(4)]
        generator = make_generator(process_managers, [snippet_folder], output_folder, max_concurrent=3)

        result = await generator.generate()

        assert sorted(result.processed) == ["PM0", "PM1", "PM2", "PM3"]
        assert len(result.generated_files) == 8
        # every load takes a fresh id from the one shared counter
        ids = [a.unique_id for pm in process_managers for a in pm.workflow_model.activities]
        assert len(set(ids)) == len(ids)

    def test_none_arguments(self, snippet_folder, output_folder):
        generator = make_generator([], [snippet_folder], output_folder)
        renderer = generator.loader.renderer
        with pytest.raises(ValueError):
            WorkflowGenerator(None, generator.context, generator.repository, renderer)
        with pytest.raises(ValueError):
            WorkflowGenerator(generator.model, None, generator.repository, renderer)
        with pytest.raises(ValueError):
            WorkflowGenerator(generator.model, generator.context, None, renderer)


# ============================================================================
# CLI
# ============================================================================

MODEL_YAML = """
applications:
  - name: Orders
    process_managers:
      - name: OrderProcess
        snippets:
          - resource_type: workflow.definition
            file: workflow.json.j2
          - resource_type: workflow.parametersdefinition
            file: parameters.json
          - resource_type: workflow.activitycontainer.workflow
            file: scope.json.j2
          - resource_type: workflow.placeholder.activity
            file: activity.json.j2
        resources:
          - resource_type: microsoft.workflows.azurelogicapp
            parameters:
              workflow_definition_file: orders/workflow.json
              workflow_parameters_file: orders/workflow.parameters.json
        workflow_model:
          name: Main
          activities:
            - name: A
              type: Task
            - name: B
              type: Task
"""


class TestCli:
    def test_generate_model(self, tmp_path, snippet_folder, output_folder):
        from cli.main import cli

        model_file = tmp_path / "model.yaml"
        model_file.write_text(MODEL_YAML)

        runner = CliRunner()
        result = runner.invoke(cli, [
            "generate", "model", str(model_file),
            "-t", str(snippet_folder),
            "-o", str(output_folder),
        ])

        assert result.exit_code == 0, result.output
        assert "Generation completed successfully" in result.output
        workflow = json.loads((output_folder / "orders" / "workflow.json").read_text())
        assert definition_of(workflow)["actions"]["Main"]["actions"]["B"]["runAfter"] == {"A": ["Succeeded"]}

    def test_generate_model_with_errors(self, tmp_path, snippet_folder, output_folder):
        from cli.main import cli

        model_file = tmp_path / "model.yaml"
        model_file.write_text(MODEL_YAML.replace("file: workflow.json.j2", "file: workflow_no_parameters.json.j2")
                              .replace("""            file: activity.json.j2
""", """            file: activity.json.j2
          - resource_type: workflow.parameter
            file: parameter_a.json
"""))

        result = CliRunner().invoke(cli, [
            "generate", "model", str(model_file),
            "-t", str(snippet_folder),
            "-o", str(output_folder),
        ])

        assert result.exit_code == 1
        assert "Found 1 errors" in result.output

    def test_validate(self, tmp_path):
        from cli.main import cli

        model_file = tmp_path / "model.yaml"
        model_file.write_text(MODEL_YAML)

        result = CliRunner().invoke(cli, ["generate", "validate", str(model_file)])

        assert result.exit_code == 0, result.output
        assert "OrderProcess: 4 snippets, 2 activities" in result.output
