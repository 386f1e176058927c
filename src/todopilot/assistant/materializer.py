"""Persists the tasks proposed by a generation reply."""

import logging

from ..errors import BatchCreateError
from ..tasks.base import TaskStore
from ..tasks.models import ProposedTask
from .data_structures import MaterializationResult, TaskFailure

logger = logging.getLogger(__name__)


class ActionMaterializer:
    """Persist the proposed tasks of a generation reply.

    Issues one batch_create call. Tasks that were created stay in the store
    when others fail; the result reports the counts instead of rolling back.
    """

    def __init__(self, task_store: TaskStore):
        self._task_store = task_store

    async def materialize(self, proposed: list[ProposedTask]) -> MaterializationResult:
        """Create the tasks and report what happened.

        Args:
            proposed: Tasks to create

        Returns:
            MaterializationResult with status success, partial or failed
        """
        if not proposed:
            return MaterializationResult(requested=0)

        try:
            created = await self._task_store.batch_create(proposed)
        except BatchCreateError as e:
            result = MaterializationResult(
                requested=len(proposed),
                created=e.created,
                failures=[TaskFailure(task=task, reason=reason) for task, reason in e.failures],
            )
            logger.warning(
                "Created %d of %d proposed tasks", len(result.created), result.requested
            )
            return result
        except Exception as e:
            # The store failed before reporting per-item results
            logger.exception("Task store rejected the batch")
            return MaterializationResult(
                requested=len(proposed),
                failures=[TaskFailure(task=task, reason=str(e) or type(e).__name__) for task in proposed],
            )

        logger.info("Created %d proposed tasks", len(created))
        return MaterializationResult(requested=len(proposed), created=created)
