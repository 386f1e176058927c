"""Functions offered to the remote model.

add_tasks is the only call that changes anything, and it does so
indirectly: its tasks are proposals, materialized after the reply is
classified. Calls may arrive natively (tools/functions dialects) or
written inline in the text; both end up here.

query_tasks and get_statistics are read-only. They are answered from the
task store during the request, and their results are sent back to the
model so it can base summaries on the full list.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..config import MAX_CONTEXT_TASKS
from ..llm.models import ToolCall, ToolSpec
from ..tasks.base import TaskStore
from ..tasks.models import ProposedTask, TaskFilter

logger = logging.getLogger(__name__)

ADD_TASKS = "add_tasks"
QUERY_TASKS = "query_tasks"
GET_STATISTICS = "get_statistics"

# Names models use for the same calls
ADD_TASKS_ALIASES = frozenset({ADD_TASKS, "add_todos", "create_tasks", "create_todos"})
QUERY_TASKS_ALIASES = frozenset({QUERY_TASKS, "query_todos", "list_tasks", "list_todos"})
GET_STATISTICS_ALIASES = frozenset({GET_STATISTICS, "get_stats", "task_statistics"})

ADD_TASKS_TOOL = ToolSpec(
    name=ADD_TASKS,
    description="添加一个或多个新任务到待办列表。将大目标拆解为具体可执行的小任务时使用。",
    parameters={
        "type": "object",
        "properties": {
            "tasks": {
                "type": "array",
                "description": "要添加的任务列表",
                "items": {
                    "type": "object",
                    "properties": {
                        "text": {"type": "string", "description": "任务内容"},
                        "priority": {
                            "type": "string",
                            "enum": ["low", "medium", "high"],
                            "description": "任务优先级",
                        },
                    },
                    "required": ["text"],
                },
            },
        },
        "required": ["tasks"],
    },
)

QUERY_TASKS_TOOL = ToolSpec(
    name=QUERY_TASKS,
    description="查询待办任务列表。当用户询问'有什么任务'、'任务列表'、'完成了哪些'或需要总结工作时使用。",
    parameters={
        "type": "object",
        "properties": {
            "status": {
                "type": "string",
                "enum": ["pending", "in_progress", "completed", "cancelled"],
                "description": "按状态过滤",
            },
            "completed": {"type": "boolean", "description": "是否已完成"},
            "search": {"type": "string", "description": "关键词搜索"},
        },
    },
)

GET_STATISTICS_TOOL = ToolSpec(
    name=GET_STATISTICS,
    description="获取任务统计信息。当用户询问'统计'、'完成了多少'、'进度如何'时使用。",
    parameters={"type": "object", "properties": {}},
)

# Offered when no task store is available to answer the read-only calls
TOOLS = [ADD_TASKS_TOOL]
TASK_TOOLS = [ADD_TASKS_TOOL, QUERY_TASKS_TOOL, GET_STATISTICS_TOOL]


def is_add_tasks(name: str | None) -> bool:
    return bool(name) and name.lower() in ADD_TASKS_ALIASES


def is_read_tool(name: str | None) -> bool:
    """Whether a call is one of the read-only task queries."""
    return bool(name) and name.lower() in QUERY_TASKS_ALIASES | GET_STATISTICS_ALIASES


def proposed_from_items(items: Any) -> list[ProposedTask]:
    """Convert a list of strings or {text, priority} objects to proposed tasks.

    Entries that are blank or malformed are skipped.
    """
    if not isinstance(items, list):
        return []

    proposed = []
    for item in items:
        if isinstance(item, str):
            item = {"text": item}
        if not isinstance(item, dict):
            continue
        data = {"text": item.get("text") or item.get("title") or ""}
        if item.get("priority"):
            data["priority"] = item["priority"]
        try:
            proposed.append(ProposedTask.model_validate(data))
        except ValidationError:
            # Unknown priority: keep the task at the default priority
            try:
                proposed.append(ProposedTask(text=data["text"]))
            except ValidationError:
                logger.debug("Skipping malformed task entry: %r", item)
    return proposed


def proposed_from_arguments(arguments: dict[str, Any]) -> list[ProposedTask]:
    """Proposed tasks from add_tasks arguments ('tasks', 'todos' or a single 'text')."""
    for key in ("tasks", "todos", "new_tasks", "new_todos"):
        if key in arguments:
            return proposed_from_items(arguments[key])
    if "text" in arguments:
        return proposed_from_items([arguments])
    return []


def proposed_from_calls(calls: list[ToolCall]) -> list[ProposedTask]:
    """Proposed tasks from every add_tasks call; other calls are ignored."""
    proposed = []
    for call in calls:
        if is_read_tool(call.name):
            continue
        if not is_add_tasks(call.name):
            logger.warning("Ignoring call to unknown function %r", call.name)
            continue
        proposed.extend(proposed_from_arguments(call.arguments))
    return proposed


class TaskQueryRunner:
    """Answers the read-only calls from a task store.

    Results are JSON-ready dicts with a success flag; failures are reported
    to the model in the result instead of raised.

    Args:
        task_store: Store the queries read from
        limit: Most tasks returned by one query
    """

    def __init__(self, task_store: TaskStore, limit: int = MAX_CONTEXT_TASKS):
        self._task_store = task_store
        self._limit = limit

    async def run(self, call: ToolCall) -> dict[str, Any]:
        name = call.name.lower()
        try:
            if name in QUERY_TASKS_ALIASES:
                return await self._query_tasks(call.arguments)
            if name in GET_STATISTICS_ALIASES:
                return await self._get_statistics()
        except ValidationError as e:
            logger.info("Invalid %s arguments: %r", call.name, call.arguments)
            return {"success": False, "error": f"参数无效: {e.errors()[0]['msg']}"}
        except Exception as e:
            logger.exception("Task query %s failed", call.name)
            return {"success": False, "error": f"查询失败: {e}"}
        return {"success": False, "error": f"未知函数: {call.name}"}

    async def _query_tasks(self, arguments: dict[str, Any]) -> dict[str, Any]:
        task_filter = TaskFilter.model_validate({
            key: arguments[key]
            for key in ("status", "completed", "priority", "search")
            if arguments.get(key) not in (None, "")
        })
        tasks = await self._task_store.list_tasks(task_filter)
        result: dict[str, Any] = {
            "success": True,
            "count": len(tasks),
            "tasks": [task.to_context() for task in tasks[:self._limit]],
        }
        if len(tasks) > self._limit:
            result["truncated"] = True
        return result

    async def _get_statistics(self) -> dict[str, Any]:
        stats = await self._task_store.statistics()
        return {
            "success": True,
            "statistics": stats.model_dump(),
            "message": (
                f"共 {stats.total} 个任务，已完成 {stats.completed}，"
                f"待办 {stats.pending}，进行中 {stats.in_progress}"
            ),
        }
