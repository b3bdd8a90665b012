"""Prompt construction for model requests.

This module turns a task into the prompt text sent to the backend, using
hints from the task context where they apply.
"""

from typing import Any, Sequence

from ..capabilities import CODE_CAPABILITIES, Capability
from ..types import Task

LANGUAGE_KEY = "language"
HISTORY_KEY = "conversationHistory"

_SPEAKERS = ("User", "Assistant")


class PromptBuilder:
    """Builds optimized prompts for tasks.

    The rules, checked in order:
    1. A code task with a ``language`` hint gets a code-generation prompt.
    2. A conversational task with a non-empty ``conversationHistory`` gets a
       transcript prompt, turns alternating between user and assistant.
    3. Anything else is sent as the raw query.
    """

    def optimize(self, task: Task) -> str:
        """Return the prompt text for a task.

        Args:
            task: The task to build a prompt for.

        Returns:
            The prompt string. Pure: the same task always yields the same prompt.
        """
        if task.requires(*CODE_CAPABILITIES):
            language = task.context.get(LANGUAGE_KEY)
            if language:
                return self.build_code_prompt(str(language), task.query)

        if Capability.CONVERSATIONAL in task.required_capabilities:
            history = self._history_of(task)
            if history:
                return self.build_conversation_prompt(history, task.query)

        return task.query

    def build_code_prompt(self, language: str, query: str) -> str:
        return f"Generate {language} code for: {query}"

    def build_conversation_prompt(self, history: Sequence[Any], query: str) -> str:
        """Format prior turns and the new query as a conversation transcript.

        Args:
            history: Prior turns, oldest first, starting with the user.
            query: The new user message.

        Returns:
            The transcript prompt.
        """
        lines = ["Continue this conversation:", ""]
        for index, turn in enumerate(history):
            lines.append(f"{_SPEAKERS[index % 2]}: {turn}")
        lines.append(f"User: {query}")
        return "\n".join(lines)

    @staticmethod
    def _history_of(task: Task) -> list[Any]:
        history = task.context.get(HISTORY_KEY)
        # a bare string is not a sequence of turns
        if not history or isinstance(history, (str, bytes)):
            return []
        return list(history)
