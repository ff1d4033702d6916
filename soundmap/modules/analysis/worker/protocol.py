"""
Worker wire protocol.

Every message is a dict {"type": str, "payload": dict, "id": int}. Replies
echo the id of the request they answer.

Requests (host → worker):
    init       {}
    analyze    {"audio_buffer": ndarray[float32], "file_name": str}
    shutdown   {}

Responses (worker → host):
    init-complete      {"success": bool, "error"?: str}
    analysis-complete  {"analysis": dict, "file_name": str}
    error              {"error": str}
"""

from typing import Any, Dict, Optional

from soundmap.core.interfaces import Message

# Request types
MSG_INIT = "init"
MSG_ANALYZE = "analyze"
MSG_SHUTDOWN = "shutdown"

# Response types
MSG_INIT_COMPLETE = "init-complete"
MSG_ANALYSIS_COMPLETE = "analysis-complete"
MSG_ERROR = "error"

REQUEST_TYPES = (MSG_INIT, MSG_ANALYZE, MSG_SHUTDOWN)
RESPONSE_TYPES = (MSG_INIT_COMPLETE, MSG_ANALYSIS_COMPLETE, MSG_ERROR)


def make_message(msg_type: str, payload: Optional[Dict[str, Any]], msg_id: Optional[int]) -> Message:
    """Build a wire message."""
    return {"type": msg_type, "payload": payload or {}, "id": msg_id}


def make_error(msg_id: Optional[int], error: str) -> Message:
    """Build an error reply."""
    return make_message(MSG_ERROR, {"error": error}, msg_id)


def is_valid_response(message: Any) -> bool:
    """Shape check for inbound messages on the host side."""
    return (
        isinstance(message, dict)
        and message.get("type") in RESPONSE_TYPES
        and isinstance(message.get("id"), int)
        and isinstance(message.get("payload"), dict)
    )
