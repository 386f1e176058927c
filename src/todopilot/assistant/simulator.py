"""Local heuristic simulator.

Answers without any network access so the assistant stays usable before an
API key is configured. Replies are chosen by an ordered rule table; the
first rule whose predicate matches the lowercased input wins.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..config import get_simulator_delay
from ..tasks.models import ProposedTask, Task, TaskStatus
from .data_structures import AssistantReply, ReplyKind

logger = logging.getLogger(__name__)

GENERATION_TRIGGERS = ("生成", "计划", "帮我", "拆解", "plan", "decompose", "break down", "help me")
SUMMARY_TRIGGERS = ("总结", "回顾", "summar", "review")

GENERIC_SUBTASKS = (
    "调研相关竞品分析",
    "草拟项目需求文档 (PRD)",
    "设计初步 UI 原型",
)

GENERATION_TEXT = (
    "（模拟模式）没问题，我已经为你把这个大目标拆解成了几个可执行的小任务"
    "（配置 API Key 可体验真实智能生成）："
)
FALLBACK_TEXT = (
    "我是你的效率助手。你可以在“设置”中配置 API Key 来激活我的完全体。"
    "目前我可以模拟生成计划或总结。"
)


@dataclass(frozen=True)
class SimulatorRule:
    """One row of the simulator rule table."""

    name: str
    matches: Callable[[str], bool]
    build: Callable[[list[Task]], AssistantReply]


def contains_any(*triggers: str) -> Callable[[str], bool]:
    """Predicate matching input that contains one of the triggers."""
    return lambda text: any(trigger in text for trigger in triggers)


def build_generation(tasks: list[Task]) -> AssistantReply:
    return AssistantReply(
        text=GENERATION_TEXT,
        kind=ReplyKind.GENERATION,
        proposed_tasks=[ProposedTask(text=text) for text in GENERIC_SUBTASKS],
    )


def build_summary(tasks: list[Task]) -> AssistantReply:
    completed = sum(1 for task in tasks if task.completed)
    unfinished = sum(
        1 for task in tasks
        if task.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
    )
    return AssistantReply(
        text=(
            f"（模拟模式）本周工作小结：已完成 {completed} 项，待办 {unfinished} 项。"
            "建议优先处理高优先级事项。"
        ),
        kind=ReplyKind.SUMMARY,
    )


def build_fallback(tasks: list[Task]) -> AssistantReply:
    return AssistantReply.chat(FALLBACK_TEXT)


DEFAULT_RULES: tuple[SimulatorRule, ...] = (
    SimulatorRule("generation", contains_any(*GENERATION_TRIGGERS), build_generation),
    SimulatorRule("summary", contains_any(*SUMMARY_TRIGGERS), build_summary),
    SimulatorRule("fallback", lambda text: True, build_fallback),
)


class LocalSimulator:
    """Rule-based stand-in for the remote model.

    Args:
        rules: Ordered rule table; the last rule should match everything
        delay: Seconds to wait before answering (None reads the configured delay)
    """

    def __init__(
        self,
        rules: tuple[SimulatorRule, ...] = DEFAULT_RULES,
        delay: float | None = None,
    ):
        self.rules = rules
        self.delay = get_simulator_delay() if delay is None else delay

    def match(self, text: str) -> SimulatorRule | None:
        """First rule matching the input, or None."""
        lowered = text.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule
        return None

    async def respond(self, text: str, tasks: list[Task]) -> AssistantReply:
        """Answer a message from the rule table."""
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        rule = self.match(text)
        if rule is None:
            return build_fallback(tasks)
        logger.debug("Simulator rule matched: %s", rule.name)
        return rule.build(tasks)
