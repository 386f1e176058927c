"""Unit tests for the reply classifier."""
from hypothesis import given
from hypothesis import strategies as st

from todopilot.assistant import AssistantReply, ReplyKind, classify
from todopilot.tasks import ProposedTask


def blank_task() -> ProposedTask:
    """A proposed task that bypassed validation."""
    return ProposedTask.model_construct(text="   ")


class TestClassify:
    """Tests for classify."""

    def test_generation_keeps_valid_tasks(self):
        reply = AssistantReply(
            text="ok",
            kind=ReplyKind.GENERATION,
            proposed_tasks=[ProposedTask(text="a"), blank_task(), ProposedTask(text="b")],
        )

        result = classify(reply)

        assert result.kind == ReplyKind.GENERATION
        assert [task.text for task in result.proposed_tasks] == ["a", "b"]
        assert result.text == "ok"

    def test_generation_without_tasks_becomes_chat(self):
        reply = AssistantReply(text="nothing", kind=ReplyKind.GENERATION, proposed_tasks=[blank_task()])

        result = classify(reply)

        assert result.kind == ReplyKind.CHAT
        assert result.proposed_tasks == []

    def test_tasks_removed_from_other_kinds(self):
        for kind in (ReplyKind.CHAT, ReplyKind.SUMMARY, ReplyKind.ERROR):
            reply = AssistantReply(text="t", kind=kind, proposed_tasks=[ProposedTask(text="a")])
            result = classify(reply)
            assert result.kind == kind
            assert result.proposed_tasks == []

    def test_empty_generation_text_gets_acknowledgement(self):
        reply = AssistantReply(text="  ", kind=ReplyKind.GENERATION, proposed_tasks=[ProposedTask(text="a")])

        result = classify(reply)

        assert "1" in result.text
        assert result.text.strip()

    def test_warnings_are_kept(self):
        reply = AssistantReply(text="t", warnings=["w"])
        assert classify(reply).warnings == ["w"]

    @given(
        st.sampled_from(list(ReplyKind)),
        st.lists(st.text(max_size=10), max_size=5),
        st.text(max_size=20),
    )
    def test_generation_iff_tasks(self, kind, texts, text):
        """Property: after classification, tasks are non-empty iff kind is generation."""
        tasks = [ProposedTask.model_construct(text=t) for t in texts]
        result = classify(AssistantReply(text=text, kind=kind, proposed_tasks=tasks))

        assert (result.kind == ReplyKind.GENERATION) == bool(result.proposed_tasks)
        assert all(task.text.strip() for task in result.proposed_tasks)
