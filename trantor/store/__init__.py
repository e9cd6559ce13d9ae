"""Task store selection."""

from __future__ import annotations

import logging

from trantor.config import Settings
from trantor.store.base import TaskStore
from trantor.store.memory_store import InMemoryTaskStore
from trantor.store.supabase_store import (
    SupabaseTaskStore,
    row_to_task,
    task_to_row,
    update_to_row,
)

__all__ = [
    "InMemoryTaskStore",
    "SupabaseTaskStore",
    "TaskStore",
    "create_supabase_auth_client",
    "create_supabase_client",
    "create_task_store",
    "row_to_task",
    "task_to_row",
    "update_to_row",
]

logger = logging.getLogger("trantor")


def create_supabase_client(settings: Settings):
    from supabase import create_client

    return create_client(settings.supabase_url, settings.supabase_key)


def create_supabase_auth_client(settings: Settings):
    """A throwaway client for one auth call: no stored session, no refresh timer."""
    from supabase import ClientOptions, create_client

    options = ClientOptions(auto_refresh_token=False, persist_session=False)
    return create_client(settings.supabase_url, settings.supabase_key, options=options)


def create_task_store(settings: Settings, client=None) -> TaskStore:
    """Build the task store named by ``settings.task_backend``.

    Supports:
      - "memory" (default): process-local, lost on restart
      - "supabase": the hosted ``tasks_tasks`` table.
        Set SUPABASE_URL and SUPABASE_KEY.
    """
    backend = settings.task_backend.lower()

    if backend == "supabase":
        if client is None:
            if not (settings.supabase_url and settings.supabase_key):
                logger.warning("TASK_BACKEND=supabase but no credentials set, falling back to memory")
                return InMemoryTaskStore()
            client = create_supabase_client(settings)
        logger.info("Using Supabase task backend (%s)", settings.tasks_table)
        return SupabaseTaskStore(client, table=settings.tasks_table)

    return InMemoryTaskStore()
