"""
Server Message Schema
=====================

Text frames pushed by the stream server carry out-of-band notifications.
The only recognised shape is an error notification:

    {"error": "device not found"}

Anything that is not JSON is an unrecognised diagnostic and is discarded
by the caller. Binary frames are raw H.264 and never pass through here.

Example:
    from scrcpy_viewer.models.messages import parse_server_message

    message = parse_server_message('{"error": "device not found"}')
    print(message.detail)
"""

import json
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from scrcpy_viewer.models.session import UNKNOWN_SERVER_ERROR


logger = logging.getLogger(__name__)


class ServerErrorMessage(BaseModel):
    """
    Schema for error notifications received as text frames.

    Extra fields are tolerated so the server may attach context.

    Attributes:
        error: Error text reported by the server
    """

    model_config = ConfigDict(extra="allow")

    error: Optional[str] = Field(
        default=None,
        description="Error text reported by the server",
    )

    @property
    def detail(self) -> str:
        """Error text, or a generic fallback when the server sent none."""
        if isinstance(self.error, str) and self.error:
            return self.error
        return UNKNOWN_SERVER_ERROR


def parse_server_message(text: str) -> Optional[ServerErrorMessage]:
    """
    Parse a text frame into a ServerErrorMessage.

    Args:
        text: Raw text frame

    Returns:
        ServerErrorMessage, or None if the text cannot be parsed as a
        JSON value
    """
    try:
        data = json.loads(text)
    except (ValueError, RecursionError, TypeError):
        # ValueError also covers integers past the digit limit
        return None

    if data is None:
        return None

    if not isinstance(data, dict):
        # Valid JSON without an error field
        return ServerErrorMessage()

    error = data.get("error")
    if not error:
        error = None
    elif not isinstance(error, str):
        error = str(error)

    extra = {k: v for k, v in data.items() if k != "error"}
    return ServerErrorMessage(error=error, **extra)
