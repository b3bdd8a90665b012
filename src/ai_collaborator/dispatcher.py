"""Task dispatcher.

The dispatcher holds the registered agents and routes each task to an agent
whose capabilities cover everything the task requires.
"""

import asyncio
import uuid
from typing import Callable, Iterable, Sequence

from .agents.base import Agent
from .capabilities import is_supported
from .exceptions import NoCapableAgentError
from .logging import get_logger
from .types import InitResult, Task, TaskResult, capability_values

logger = get_logger(__name__)

# picks one agent out of the capable candidates (in registration order)
SelectionPolicy = Callable[[Task, Sequence[Agent]], Agent]


def first_match(task: Task, candidates: Sequence[Agent]) -> Agent:
    """Pick the earliest registered capable agent."""
    return candidates[0]


def fewest_extra_capabilities(task: Task, candidates: Sequence[Agent]) -> Agent:
    """Pick the capable agent advertising the fewest capabilities beyond the task's.

    Ties go to the earliest registered agent.
    """
    return min(
        candidates,
        key=lambda agent: len(agent.provide_capabilities() - task.required_capabilities),
    )


class Dispatcher:
    """Routes tasks to registered agents by capability."""

    def __init__(
        self,
        selection_policy: SelectionPolicy = first_match,
        max_concurrent_tasks: int = 4,
    ):
        """Initialize the dispatcher.

        Args:
            selection_policy: Chooses among capable agents
            max_concurrent_tasks: Upper bound on tasks run at once by ``execute_many``
        """
        if max_concurrent_tasks < 1:
            raise ValueError(f"max_concurrent_tasks must be at least 1, got {max_concurrent_tasks}")
        self.selection_policy = selection_policy
        self.max_concurrent_tasks = max_concurrent_tasks
        self._agents: dict[uuid.UUID, Agent] = {}

    def register(self, agent: Agent) -> uuid.UUID:
        """Add an agent. Returns the handle used to unregister it."""
        handle = uuid.uuid4()
        self._agents[handle] = agent
        logger.info(f"registered agent {agent.name} ({handle})")
        return handle

    def unregister(self, handle: uuid.UUID) -> bool:
        """Remove an agent. Returns False if the handle is unknown."""
        agent = self._agents.pop(handle, None)
        if agent is None:
            return False
        logger.info(f"unregistered agent {agent.name} ({handle})")
        return True

    @property
    def agents(self) -> list[Agent]:
        """Registered agents in registration order."""
        return list(self._agents.values())

    def capable_agents(self, task: Task) -> list[Agent]:
        return [agent for agent in self._agents.values() if is_supported(task, agent)]

    def select_agent(self, task: Task) -> Agent:
        """Choose the agent for a task.

        Raises:
            NoCapableAgentError: If no registered agent supports the task.
        """
        candidates = self.capable_agents(task)
        if not candidates:
            raise NoCapableAgentError(
                str(task.id), capability_values(task.required_capabilities)
            )
        return self.selection_policy(task, candidates)

    async def execute(self, task: Task) -> TaskResult:
        """Run a task on the selected agent.

        The agent's result or error is passed through unchanged.

        Raises:
            NoCapableAgentError: If no registered agent supports the task.
        """
        agent = self.select_agent(task)
        logger.info(f"dispatching task {task.id} to {agent.name}")
        return await agent.process_task(task)

    async def execute_many(
        self,
        tasks: Iterable[Task],
        return_exceptions: bool = False,
    ) -> list[TaskResult | BaseException]:
        """Run several tasks concurrently, at most ``max_concurrent_tasks`` at a time.

        Results come back in the order of ``tasks``. With ``return_exceptions``
        failures are returned in place of results instead of raised.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_tasks)

        async def run(task: Task) -> TaskResult:
            async with semaphore:
                return await self.execute(task)

        return await asyncio.gather(
            *(run(task) for task in tasks),
            return_exceptions=return_exceptions,
        )

    async def shutdown_all(self) -> list[InitResult]:
        """Shut down every registered agent."""
        agents = self.agents
        return await asyncio.gather(*(agent.shutdown() for agent in agents))
