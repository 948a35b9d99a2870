"""Tests for WorkflowEngine: execute by id, run statistics, history and validate."""

import pytest
from conftest import ScriptedCompletionService, make_definition

from prompt_workflows import WorkflowEngine
from prompt_workflows.engine.completion import RoutingCompletionService
from prompt_workflows.engine.exceptions import (
    CycleDetectedError,
    ProviderServiceError,
    WorkflowNotFoundError,
)
from prompt_workflows.engine.execution_record import ExecutionStatus
from prompt_workflows.engine.llm_config import EngineConfig
from prompt_workflows.engine.repositories import (
    InMemoryDefinitionRepository,
    YamlDefinitionRepository,
)


def chain_definition(workflow_id: str = "chain"):
    return make_definition(
        [
            {
                "id": "p1",
                "kind": "prompt",
                "config": {"template": "Summarize {{topic}}", "outputVariable": "summary"},
            },
            {"id": "p2", "kind": "prompt", "config": {"template": "Expand {{summary}}"}},
        ],
        edges=[("p1", "p2")],
        workflow_id=workflow_id,
    )


@pytest.fixture
def definitions() -> InMemoryDefinitionRepository:
    return InMemoryDefinitionRepository([chain_definition()])


class TestExecute:
    @pytest.mark.asyncio
    async def test_execute_by_id_updates_run_statistics(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)

        report = await engine.execute("chain", {"topic": "tides"}, caller_id="u-42")

        assert report.status is ExecutionStatus.COMPLETED
        assert completion_service.texts[0] == "Summarize tides"
        stored = await definitions.load("chain")
        assert stored.run_count == 1
        assert stored.last_run_at == report.record.completed_at

    @pytest.mark.asyncio
    async def test_failed_run_leaves_statistics_alone(self, definitions):
        service = ScriptedCompletionService(failures={1: ProviderServiceError("down")})
        engine = WorkflowEngine(definitions, service)

        report = await engine.execute("chain", {"topic": "tides"})

        assert report.status is ExecutionStatus.FAILED
        assert report.failed_node_id == "p2"
        assert (await definitions.load("chain")).run_count == 0

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)

        with pytest.raises(WorkflowNotFoundError):
            await engine.execute("missing")

        assert completion_service.calls == []

    @pytest.mark.asyncio
    async def test_cyclic_definition_raises(self, completion_service):
        cyclic = make_definition(
            [
                {"id": "a", "kind": "condition", "config": {"expression": "true"}},
                {"id": "b", "kind": "condition", "config": {"expression": "true"}},
            ],
            edges=[("a", "b"), ("b", "a")],
            workflow_id="cyclic",
        )
        engine = WorkflowEngine(InMemoryDefinitionRepository([cyclic]), completion_service)

        with pytest.raises(CycleDetectedError):
            await engine.execute("cyclic")

        assert await engine.history("cyclic") == []

    @pytest.mark.asyncio
    async def test_execute_definition_without_repository(self, completion_service):
        engine = WorkflowEngine(InMemoryDefinitionRepository(), completion_service)

        report = await engine.execute_definition(chain_definition("adhoc"), {"topic": "x"})

        assert report.succeeded
        with pytest.raises(WorkflowNotFoundError):
            await engine.definitions.load("adhoc")


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_newest_first_and_limited(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service, history_limit=2)

        reports = [await engine.execute("chain", {"topic": str(i)}) for i in range(3)]

        history = await engine.history("chain")
        assert [r.id for r in history] == [reports[2].execution_id, reports[1].execution_id]
        assert len(await engine.history("chain", limit=10)) == 3
        assert await engine.history("other") == []


class TestValidate:
    def test_valid_definition_reports_order(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)
        definition = make_definition(
            [
                {"id": "p2", "kind": "prompt", "config": {"template": "{{summary}}"}},
                {
                    "id": "p1",
                    "kind": "prompt",
                    "config": {"template": "Hi", "outputVariable": "summary"},
                },
            ],
            edges=[("p1", "p2")],
        )

        result = engine.validate(definition)

        assert result.valid
        assert result.order == ["p1", "p2"]
        assert result.waves == [["p1"], ["p2"]]
        assert result.warnings == []

    def test_unbound_placeholder_is_a_warning(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)

        result = engine.validate(chain_definition())

        assert result.valid
        assert len(result.warnings) == 1
        assert "'{{topic}}' is not bound" in result.warnings[0]

    def test_loop_locals_are_bound(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)
        definition = make_definition(
            [
                {
                    "id": "loop",
                    "kind": "loop",
                    "config": {
                        "iteratorVariable": "items",
                        "itemVariable": "row",
                        "template": "{{loopIndex}} {{row}} {{isLastItem}}",
                    },
                }
            ],
            variables={"items": []},
        )

        assert engine.validate(definition).warnings == []

    def test_collects_errors_and_warnings(self, definitions, completion_service):
        engine = WorkflowEngine(definitions, completion_service)
        definition = make_definition(
            [
                {"id": "a", "kind": "prompt", "config": {"template": "x", "temperature": 9}},
                {"id": "b", "kind": "condition", "config": {"expression": "vars.a && vars.b"}},
                {"id": "c", "kind": "transform", "config": {"expression": "reverse"}},
                {
                    "id": "d",
                    "kind": "merge",
                    "config": {"inputNodeIds": ["b", "ghost"], "strategy": "zip"},
                },
                {"id": "e", "kind": "split", "config": {"inputVariable": "t", "strategy": "x"}},
            ],
            edges=[("b", "c"), ("c", "b")],
            variables={"t": "text"},
        )

        result = engine.validate(definition)

        assert not result.valid
        assert result.order == []
        assert any("Cyclic dependency" in error for error in result.errors)
        assert any("node 'a'" in error for error in result.errors)
        joined = "\n".join(result.warnings)
        assert "unsupported condition" in joined
        assert "unsupported transform" in joined
        assert "unknown merge strategy 'zip'" in joined
        assert "merge input 'ghost' is not a node" in joined
        assert "unknown split strategy 'x'" in joined


class TestFromConfig:
    def test_wires_routing_service_and_history_limit(self, definitions):
        engine = WorkflowEngine.from_config(EngineConfig(history_limit=7), definitions=definitions)

        assert engine.definitions is definitions
        assert engine.history_limit == 7
        assert isinstance(engine.runner.completion_service, RoutingCompletionService)

    def test_workflows_dir_uses_yaml_repository(self, tmp_path):
        engine = WorkflowEngine.from_config(EngineConfig(), workflows_dir=tmp_path)
        assert isinstance(engine.definitions, YamlDefinitionRepository)

    def test_config_loaded_when_omitted(self, tmp_path, monkeypatch):
        config_path = tmp_path / "config.yml"
        config_path.write_text("history_limit: 3\n", encoding="utf-8")
        monkeypatch.setenv("PROMPT_WORKFLOWS_CONFIG", str(config_path))

        engine = WorkflowEngine.from_config()

        assert engine.history_limit == 3
        assert isinstance(engine.definitions, InMemoryDefinitionRepository)
