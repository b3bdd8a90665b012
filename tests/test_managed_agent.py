"""Tests for the managed agent state machine."""

import asyncio

import pytest

from ai_collaborator.adapters import ModelAdapter
from ai_collaborator.agents import ManagedAgent
from ai_collaborator.capabilities import Capability
from ai_collaborator.config import AgentConfiguration
from ai_collaborator.exceptions import (
    AgentUnavailableError,
    CapabilityNotSupportedError,
    ModelNotFoundError,
    ProviderUnavailableError,
    TaskTimeoutError,
)
from ai_collaborator.types import AgentState, AgentStatus, ResultStatus

from conftest import ScriptedProcessor, make_task


def record_states(agent: ManagedAgent) -> list[AgentState]:
    states = [agent.get_state()]
    agent.add_state_listener(states.append)
    return states


class QueryFailingProcessor(ScriptedProcessor):
    """Fails tasks whose query is ``fail`` straight away."""

    async def run(self, task, on_progress=None):
        if task.query == "fail":
            self.runs.append(task)
            raise RuntimeError("boom")
        return await super().run(task, on_progress)


class TestLifecycle:
    """Tests for initialize and shutdown transitions."""

    @pytest.mark.asyncio
    async def test_initialize_success(self, agent, processor):
        states = record_states(agent)
        config = AgentConfiguration(max_task_history_items=3)
        result = await agent.initialize(config)
        assert result.success
        assert states == [AgentState.idle(), AgentState.initializing(), AgentState.idle()]
        assert processor.prepared is config
        assert agent.max_task_history_items == 3

    @pytest.mark.asyncio
    async def test_initialize_failure(self, fake_backend):
        agent = ManagedAgent(ModelAdapter(fake_backend))
        result = await agent.initialize(AgentConfiguration(model_id="nonexistent:1b"))
        assert not result.success
        assert "nonexistent:1b" in result.message
        assert agent.get_state().status == AgentStatus.ERROR

    @pytest.mark.asyncio
    async def test_shutdown(self, agent, processor):
        states = record_states(agent)
        result = await agent.shutdown()
        assert result.success
        assert processor.closed
        assert states[1:] == [AgentState.shutting_down(), AgentState.terminated()]

    @pytest.mark.asyncio
    async def test_terminated_agent_rejects_tasks(self, agent, basic_task):
        await agent.shutdown()
        with pytest.raises(AgentUnavailableError):
            await agent.process_task(basic_task)
        assert agent.history == []

    @pytest.mark.asyncio
    async def test_shutdown_twice_fails(self, agent):
        await agent.shutdown()
        result = await agent.shutdown()
        assert not result.success

    def test_metadata(self, processor):
        agent = ManagedAgent(processor, name="coder", version="2.0.0", description="writes code")
        assert agent.name == "coder"
        assert agent.version == "2.0.0"
        assert agent.description == "writes code"
        assert agent.agent_id != ManagedAgent(processor).agent_id


class TestProcessTask:
    """Tests for process_task transitions and bookkeeping."""

    @pytest.mark.asyncio
    async def test_success_transitions(self, agent, basic_task):
        await agent.initialize()
        states = record_states(agent)
        result = await agent.process_task(basic_task)

        assert states == [AgentState.idle(), AgentState.busy(basic_task.id), AgentState.idle()]
        assert result.status == ResultStatus.COMPLETED
        assert result.output == "done"
        assert result.metadata["processor"] == "scripted"
        assert result.execution_time >= 0
        assert agent.get_result(basic_task.id) == result

    @pytest.mark.asyncio
    async def test_failure_transitions(self, agent, processor, basic_task):
        await agent.initialize()
        processor.error = ProviderUnavailableError("backend down")
        states = record_states(agent)

        with pytest.raises(ProviderUnavailableError):
            await agent.process_task(basic_task)

        assert states == [
            AgentState.idle(),
            AgentState.busy(basic_task.id),
            AgentState.error("backend down"),
        ]
        recorded = agent.get_result(basic_task.id)
        assert recorded.status == ResultStatus.FAILED
        assert recorded.error == "backend down"

    @pytest.mark.asyncio
    async def test_capability_gating_leaves_state_unchanged(self, agent, processor):
        task = make_task(capabilities={Capability.CODE_GENERATION, Capability.BASIC_COMPLETION})
        states = record_states(agent)

        with pytest.raises(CapabilityNotSupportedError) as exc_info:
            await agent.process_task(task)

        assert exc_info.value.capability == Capability.CODE_GENERATION
        assert states == [AgentState.idle()]
        assert agent.history == []
        assert processor.runs == []

    @pytest.mark.asyncio
    async def test_capability_gating_from_error_state(self, agent, processor, basic_task):
        processor.error = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            await agent.process_task(basic_task)
        before = agent.get_state()

        with pytest.raises(CapabilityNotSupportedError):
            await agent.process_task(make_task(capabilities={Capability.PLANNING}))
        assert agent.get_state() == before

    @pytest.mark.asyncio
    async def test_recovers_from_error(self, agent, processor, basic_task):
        processor.error = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            await agent.process_task(basic_task)

        processor.error = None
        result = await agent.process_task(make_task())
        assert result.is_completed
        assert agent.get_state() == AgentState.idle()

    @pytest.mark.asyncio
    async def test_history_bound(self, processor):
        agent = ManagedAgent(processor, max_task_history_items=1)
        tasks = [make_task(f"task {i}") for i in range(3)]
        for task in tasks:
            await agent.process_task(task)

        assert len(agent.history) == 1
        assert agent.history[0].task_id == tasks[-1].id

    @pytest.mark.asyncio
    async def test_every_outcome_recorded(self, agent, processor):
        ok = make_task("ok")
        await agent.process_task(ok)
        processor.error = RuntimeError("boom")
        failed = make_task("fail")
        with pytest.raises(RuntimeError):
            await agent.process_task(failed)

        statuses = {result.task_id: result.status for result in agent.history}
        assert statuses == {ok.id: ResultStatus.COMPLETED, failed.id: ResultStatus.FAILED}

    @pytest.mark.asyncio
    async def test_timeout(self):
        processor = ScriptedProcessor(delay=1.0)
        agent = ManagedAgent(processor)
        task = make_task("slow", timeout=0.05)

        with pytest.raises(TaskTimeoutError) as exc_info:
            await agent.process_task(task)

        assert exc_info.value.timeout == 0.05
        assert agent.get_state().status == AgentStatus.ERROR
        assert agent.get_result(task.id).status == ResultStatus.TIMED_OUT

    @pytest.mark.asyncio
    async def test_concurrent_tasks(self):
        processor = ScriptedProcessor(delay=0.05)
        agent = ManagedAgent(processor)
        tasks = [make_task(f"task {i}") for i in range(5)]

        results = await asyncio.gather(*(agent.process_task(task) for task in tasks))

        assert [result.task_id for result in results] == [task.id for task in tasks]
        assert len(agent.history) == 5
        assert agent.get_state() == AgentState.idle()

    @pytest.mark.asyncio
    async def test_overlapping_tasks_stay_busy(self):
        processor = ScriptedProcessor(delay=0.05)
        agent = ManagedAgent(processor)
        slow = make_task("slow")
        states = record_states(agent)

        async def quick_after_start():
            await asyncio.sleep(0.01)
            processor.delay = 0.0
            return await agent.process_task(make_task("quick"))

        await asyncio.gather(agent.process_task(slow), quick_after_start())

        # the quick task finished while the slow one was still running
        assert AgentState.busy(slow.id) in states[2:-1]
        assert states[-1] == AgentState.idle()

    @pytest.mark.asyncio
    async def test_shutdown_refused_while_in_flight(self):
        agent = ManagedAgent(ScriptedProcessor(delay=0.05))
        running = asyncio.ensure_future(agent.process_task(make_task()))
        await asyncio.sleep(0.01)

        result = await agent.shutdown()
        assert not result.success
        await running
        assert (await agent.shutdown()).success

    @pytest.mark.asyncio
    async def test_initialize_refused_while_in_flight(self):
        processor = QueryFailingProcessor(delay=0.05)
        agent = ManagedAgent(processor)
        states = record_states(agent)
        slow = asyncio.ensure_future(agent.process_task(make_task("slow")))
        await asyncio.sleep(0.01)
        with pytest.raises(RuntimeError):
            await agent.process_task(make_task("fail"))
        assert agent.get_state().status == AgentStatus.ERROR

        config = AgentConfiguration(max_task_history_items=3)
        result = await agent.initialize(config)

        assert not result.success
        assert "in flight" in result.message
        assert processor.prepared is None
        assert agent.get_state().status == AgentStatus.ERROR
        await slow
        assert AgentState.initializing() not in states
        assert agent.get_state() == AgentState.idle()
        assert (await agent.initialize(config)).success
        assert processor.prepared is config


class TestProgress:
    """Tests for progress monitoring through the agent."""

    @pytest.mark.asyncio
    async def test_explicit_monitor(self, agent, basic_task):
        agent.enable_progress_monitoring(basic_task.id, expected_duration=5.0)
        agent.update_progress(basic_task.id, "Overcompleted", 1.5)
        assert agent.get_progress(basic_task.id).progress == 1.0
        agent.update_progress(basic_task.id, "Invalid", -0.5)
        assert agent.get_progress(basic_task.id).progress == 0.0

    def test_unknown_task_is_ignored(self, agent, basic_task):
        agent.update_progress(basic_task.id, "Working", 0.5)
        assert agent.get_progress(basic_task.id) is None

    @pytest.mark.asyncio
    async def test_explicit_monitor_survives_task(self, agent, basic_task):
        agent.enable_progress_monitoring(basic_task.id, expected_duration=5.0)
        await agent.process_task(basic_task)
        snapshot = agent.get_progress(basic_task.id)
        assert snapshot.progress == 1.0
        assert snapshot.status == "Completed"

    @pytest.mark.asyncio
    async def test_automatic_monitor_removed(self, processor, basic_task):
        seen = []
        agent = ManagedAgent(processor)

        async def observing_run(task, on_progress=None):
            on_progress("Working", 0.5)
            seen.append(agent.get_progress(task.id))
            return await ScriptedProcessor.run(processor, task)

        processor.run = observing_run
        await agent.process_task(basic_task)

        assert seen[0].progress == 0.5
        assert agent.get_progress(basic_task.id) is None

    @pytest.mark.asyncio
    async def test_shutdown_clears_monitors(self, agent, basic_task):
        agent.enable_progress_monitoring(basic_task.id, expected_duration=5.0)
        await agent.shutdown()
        assert agent.get_progress(basic_task.id) is None


class TestWithModelAdapter:
    """Tests for an agent backed by a real adapter and fake backend."""

    @pytest.mark.asyncio
    async def test_capabilities_follow_model(self, fake_backend):
        agent = ManagedAgent(ModelAdapter(fake_backend))
        await agent.initialize(AgentConfiguration(model_id="codellama:7b"))
        assert Capability.CODE_GENERATION in agent.provide_capabilities()

    @pytest.mark.asyncio
    async def test_cache_hit_through_agent(self, fake_backend):
        agent = ManagedAgent(ModelAdapter(fake_backend, model="llama3:8b"))
        first = await agent.process_task(make_task("Hi"))
        second = await agent.process_task(make_task("Hi"))
        assert fake_backend.invocations == 1
        assert second.output == first.output
        assert second.metadata["cached"] is True

    @pytest.mark.asyncio
    async def test_model_not_found_during_init(self, fake_backend):
        agent = ManagedAgent(ModelAdapter(fake_backend))
        result = await agent.initialize(AgentConfiguration(model_id="ghost"))
        assert not result.success
        with pytest.raises(ModelNotFoundError):
            await agent.processor.select_model("ghost")
