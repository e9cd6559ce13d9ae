from trantor.agents.task_agent import TaskAssistant, assistant_prompt, create_task_agent

__all__ = [
    "TaskAssistant",
    "assistant_prompt",
    "create_task_agent",
]
