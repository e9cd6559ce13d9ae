"""Text assistant: a ReAct agent over the task tools."""

from __future__ import annotations

from langchain_anthropic import ChatAnthropic
from langgraph.checkpoint.memory import MemorySaver
from langgraph.prebuilt import create_react_agent

from trantor.config import Settings
from trantor.models import Language
from trantor.tools.task_tools import ALL_TASK_TOOLS
from trantor.voice.live_session import system_instruction

TEXT_ADDENDUM = (
    "\nYou are answering in a text chat, not over audio: ignore the audio "
    "handling rules, but keep answers short."
)


def assistant_prompt(language: Language | str) -> str:
    return system_instruction(language) + TEXT_ADDENDUM


def create_task_agent(model: ChatAnthropic, language: Language | str = Language.ES, checkpointer=None):
    """Create a ReAct agent that can add and list tasks."""
    return create_react_agent(
        model=model,
        tools=ALL_TASK_TOOLS,
        name="task_agent",
        prompt=assistant_prompt(language),
        checkpointer=checkpointer,
    )


class TaskAssistant:
    """One compiled agent per language, sharing a MemorySaver for thread history."""

    def __init__(self, settings: Settings, model: ChatAnthropic | None = None) -> None:
        self.model = model or ChatAnthropic(
            model=settings.assistant_model,
            api_key=settings.anthropic_api_key,
        )
        self.memory = MemorySaver()
        self._agents: dict[Language, object] = {}

    def agent(self, language: Language | str):
        language = Language(language)
        if language not in self._agents:
            self._agents[language] = create_task_agent(self.model, language, checkpointer=self.memory)
        return self._agents[language]
