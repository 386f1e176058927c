from ..settings.models import AssistantSettings
from .data_structures import OperatingMode


def select_mode(settings: AssistantSettings) -> OperatingMode:
    """Choose the backend for a request.

    A non-blank API key selects the remote adapter; anything else, the
    local simulator. Never raises.
    """
    api_key = settings.api_key
    if isinstance(api_key, str) and api_key.strip():
        return OperatingMode.REMOTE
    return OperatingMode.LOCAL
