"""Reply classifier.

Rebuilds every reply at the trust boundary so that proposed_tasks is
non-empty exactly when kind is GENERATION.
"""

import logging

from .data_structures import AssistantReply, ReplyKind

logger = logging.getLogger(__name__)


def generation_acknowledgement(count: int) -> str:
    return f"好的，我为你拆解出了 {count} 个可执行的小任务："


def classify(reply: AssistantReply) -> AssistantReply:
    """Normalize a reply from the simulator or the remote adapter.

    - proposed tasks with blank text are dropped
    - a generation without remaining tasks becomes chat
    - tasks on any other kind are removed
    - a generation with empty text gets an acknowledgement
    """
    tasks = [task for task in reply.proposed_tasks if task.text.strip()]

    if reply.kind == ReplyKind.GENERATION:
        if not tasks:
            logger.debug("Generation reply without tasks, treating as chat")
            return reply.model_copy(update={"kind": ReplyKind.CHAT, "proposed_tasks": []})
        text = reply.text if reply.text.strip() else generation_acknowledgement(len(tasks))
        return reply.model_copy(update={"text": text, "proposed_tasks": tasks})

    if reply.proposed_tasks:
        logger.debug("Dropping %d tasks from a %s reply", len(reply.proposed_tasks), reply.kind.value)
        return reply.model_copy(update={"proposed_tasks": []})
    return reply
