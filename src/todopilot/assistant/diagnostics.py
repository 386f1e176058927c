"""Connection and function-call diagnostics.

Tests the configured endpoint the same way a chat request would and
explains what works, so users can pick the right function_calling_mode.
"""

import logging
from collections.abc import Callable

from ..config import RAW_SAMPLE_LENGTH
from ..errors import AiCallError, ProviderHTTPError
from ..llm.base import LLMProvider
from ..llm.factory import provider_from_settings
from ..llm.models import Dialect
from ..prompts import get_diagnostic_prompt
from ..settings.models import AssistantSettings
from ..tasks.base import TaskStore
from .adapter import NegotiationResult, RemoteAdapter
from .classifier import classify
from .data_structures import FunctionCallTestResult, OperatingMode, ReplyKind
from .materializer import ActionMaterializer
from .mode import select_mode

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[AssistantSettings], LLMProvider]


def _raw_sample(result: NegotiationResult) -> str | None:
    if result.response is None:
        return None
    raw = result.response.raw or result.response.content
    return raw[:RAW_SAMPLE_LENGTH] if raw else None


def _recommendations(result: NegotiationResult, called: bool) -> list[str]:
    hints = []
    if result.dialect is None:
        hints.append("当前接口不支持原生函数调用：请将 function_calling_mode 设为 disabled 并开启 enable_text_fallback")
    elif result.reply.kind == ReplyKind.ERROR:
        hints.append("请检查 API Key、接口地址 (api_base_url) 和模型名称是否正确")
    elif result.calls_from_text:
        hints.append("模型以文本形式返回了函数调用，已通过文本解析兼容；如需更稳定的结果，请使用支持 tools 的模型")
    elif not called:
        hints.append("模型没有调用 add_tasks：请确认所选模型支持函数调用，或开启 enable_text_fallback")
    if result.dialect == Dialect.FUNCTIONS:
        hints.append("接口仅支持旧版 functions 格式，可将 function_calling_mode 设为 functions 以跳过 tools 尝试")
    for skipped in result.skipped:
        logger.debug("Skipped %s dialect: %s", skipped.dialect.value, skipped.reason)
    return hints


async def run_function_call_diagnostic(
    settings: AssistantSettings,
    task_store: TaskStore,
    provider_factory: ProviderFactory | None = None,
) -> FunctionCallTestResult:
    """Ask the model to call add_tasks and report what came back.

    Uses the same dialect chain as chat requests and materializes any
    proposed tasks, so a successful run leaves test tasks in the store.

    Args:
        settings: Settings to test
        task_store: Store the test tasks are created in
        provider_factory: Builds the provider (from settings by default)

    Returns:
        FunctionCallTestResult describing the detected dialect and outcome
    """
    if select_mode(settings) is OperatingMode.LOCAL:
        return FunctionCallTestResult(
            success=False,
            message="未配置 API Key，当前为模拟模式",
            recommendations=["在设置中填写 API Key 后重试"],
        )

    factory = provider_factory or provider_from_settings
    try:
        async with factory(settings) as provider:
            adapter = RemoteAdapter(settings, provider)
            result = await adapter.negotiate(adapter.build_messages(get_diagnostic_prompt(), []))
    except AiCallError as e:
        return FunctionCallTestResult(
            success=False,
            message=f"无法连接到 AI 服务: {e.message}",
            recommendations=["请检查网络连接和接口地址 (api_base_url)"],
        )
    except ValueError as e:
        return FunctionCallTestResult(
            success=False,
            message=str(e),
            recommendations=["请检查 provider 设置"],
        )
    except Exception as e:
        logger.exception("Function-call diagnostic failed")
        return FunctionCallTestResult(
            success=False,
            message=f"诊断请求失败: {e}",
            recommendations=[
                f"请检查接口地址 ({settings.api_base_url}) 和模型名称 ({settings.model}) 是否正确",
                "使用 --verbose 运行以查看详细错误",
            ],
        )

    reply = classify(result.reply)
    called = bool(result.calls)
    function_name = result.calls[0].name if called else None

    tasks_created = 0
    if reply.kind == ReplyKind.GENERATION:
        materialization = await ActionMaterializer(task_store).materialize(reply.proposed_tasks)
        tasks_created = len(materialization.created)

    if reply.kind == ReplyKind.ERROR:
        message = reply.text
    elif called and tasks_created:
        message = f"函数调用正常：{result.dialect.value} 格式，已创建 {tasks_created} 个任务"
    elif called:
        message = "检测到函数调用，但没有创建任何任务"
    else:
        message = "模型没有发起函数调用"

    return FunctionCallTestResult(
        success=called and tasks_created > 0,
        message=message,
        api_format_detected=result.dialect.value if result.dialect else "none",
        function_called=called,
        function_name=function_name,
        tasks_created=tasks_created,
        raw_response_sample=_raw_sample(result),
        recommendations=_recommendations(result, called),
    )


async def check_connection(
    settings: AssistantSettings,
    provider_factory: ProviderFactory | None = None,
) -> bool:
    """Send a lightweight authenticated request to the endpoint.

    Returns:
        True if the endpoint answered successfully, False otherwise
        (including when no API key is configured)
    """
    if select_mode(settings) is OperatingMode.LOCAL:
        return False

    factory = provider_factory or provider_from_settings
    try:
        async with factory(settings) as provider:
            await provider.ping()
    except (AiCallError, ProviderHTTPError, ValueError) as e:
        logger.warning("Connection test failed: %s", e)
        return False
    return True
