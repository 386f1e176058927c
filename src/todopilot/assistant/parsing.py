"""Tolerant parsing of remote replies.

The model is asked for one bare JSON object but often wraps it in markdown
fences, adds prose around it, writes function calls inline, or ignores the
contract altogether. Everything here degrades instead of raising: the
worst case is a chat reply carrying the raw text.
"""

import json
import logging
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..errors import MalformedReplyError
from ..llm.models import ToolCall, parse_arguments
from ..tasks.models import ProposedTask
from .data_structures import AssistantReply, ReplyKind
from .tools import is_add_tasks, proposed_from_items

logger = logging.getLogger(__name__)

REMOTE_ERROR_HINT = "请检查设置中的 API Key 和网络"

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)


def remote_error_text(detail: str) -> str:
    """User-facing text for a failed remote request."""
    return f"AI 请求失败: {detail}。{REMOTE_ERROR_HINT}。"


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapping the whole text.

    Handles ```json ... ``` as well as bare ``` ... ```. Text that is not
    fully wrapped is returned stripped but otherwise unchanged.
    """
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group("body").strip()
    return stripped


class ReplyPayload(BaseModel):
    """The JSON object of the response contract."""

    model_config = ConfigDict(extra="ignore")

    response: str = Field(default="", validation_alias=AliasChoices("response", "reply", "message"))
    new_tasks: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("new_tasks", "new_todos", "tasks"),
    )
    kind: str | None = None
    error: Any = None


def parse_payload(text: str) -> ReplyPayload:
    """Strictly parse a reply body into the contract object.

    Raises:
        MalformedReplyError: If the body is not a JSON object matching the contract
    """
    body = strip_code_fences(text)
    try:
        value = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedReplyError(f"Reply is not JSON: {e.msg}", text) from e
    if not isinstance(value, dict):
        raise MalformedReplyError(f"Reply is JSON {type(value).__name__}, not an object", text)
    try:
        return ReplyPayload.model_validate(value)
    except ValidationError as e:
        raise MalformedReplyError(f"Reply does not match the contract: {e.error_count()} errors", text) from e


def _error_detail(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or json.dumps(error, ensure_ascii=False))
    return str(error)


def parse_reply(text: str) -> AssistantReply:
    """Interpret a reply body by its shape. Never raises.

    - {"error": ...}                   -> error
    - {"response", "new_tasks": [...]} -> generation (when tasks are valid)
    - {"response", "kind": "summary"}  -> summary
    - any other object                 -> chat with the response text (the unfenced body if empty)
    - non-JSON or invalid              -> chat with the raw text verbatim
    """
    try:
        payload = parse_payload(text)
    except MalformedReplyError as e:
        logger.debug("Degrading to chat: %s", e)
        return AssistantReply.chat(text)

    if payload.error:
        return AssistantReply.error(remote_error_text(_error_detail(payload.error)))

    proposed = proposed_from_items(payload.new_tasks)
    if proposed:
        return AssistantReply(text=payload.response, kind=ReplyKind.GENERATION, proposed_tasks=proposed)

    response = payload.response or strip_code_fences(text)
    if payload.kind and payload.kind.lower() == ReplyKind.SUMMARY.value:
        return AssistantReply(text=response, kind=ReplyKind.SUMMARY)
    return AssistantReply.chat(response)


def _as_call(value: Any) -> ToolCall | None:
    """Read {"name", "arguments"} or {"function_call": {...}} as an add_tasks call."""
    if not isinstance(value, dict):
        return None
    for wrapper in ("function_call", "function"):
        if isinstance(value.get(wrapper), dict):
            value = value[wrapper]
            break
    name = value.get("name")
    if not isinstance(name, str) or "arguments" not in value or not is_add_tasks(name):
        return None
    return ToolCall(name=name, arguments=parse_arguments(value["arguments"]))


def extract_inline_calls(text: str) -> tuple[list[ToolCall], str]:
    """Find add_tasks calls written as JSON inside plain text.

    Returns:
        Tuple of (calls, text with the call objects removed)
    """
    decoder = json.JSONDecoder()
    calls: list[ToolCall] = []
    spans: list[tuple[int, int]] = []

    index = text.find("{")
    while index != -1:
        try:
            value, end = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        call = _as_call(value)
        if call is not None:
            calls.append(call)
            spans.append((index, end))
            index = text.find("{", end)
        else:
            index = text.find("{", index + 1)

    if not calls:
        return [], text

    remaining = []
    cursor = 0
    for start, end in spans:
        remaining.append(text[cursor:start])
        cursor = end
    remaining.append(text[cursor:])
    leftover = strip_code_fences("".join(remaining))
    # A fence left empty by the removal
    if re.fullmatch(r"(```[A-Za-z]*\s*```\s*)*", leftover):
        leftover = ""
    return calls, leftover.strip()


def merge_proposed(reply: AssistantReply, proposed: list[ProposedTask]) -> AssistantReply:
    """Add tasks from function calls to a parsed reply."""
    if not proposed or reply.kind == ReplyKind.ERROR:
        return reply
    return reply.model_copy(update={
        "kind": ReplyKind.GENERATION,
        "proposed_tasks": [*proposed, *reply.proposed_tasks],
    })
