"""
Push messages from the submission event stream. Only the submission id is trusted; the payload
shape varies between senders (flat or nested under "data", camelCase or snake_case, sometimes a
JSON string), so decoding tolerates all of them and reports anything else as undecodable.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from utils.case import dict_keys_to_snake


@dataclass(frozen=True)
class SubmissionChanged:
    submission_id: str
    event: Optional[str] = None


@dataclass(frozen=True)
class UndecodableMessage:
    raw: Any
    reason: str


PushMessage = Union[SubmissionChanged, UndecodableMessage]


def _as_dict(value: Any) -> Optional[dict]:
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    return dict_keys_to_snake(value) if isinstance(value, dict) else None


def decode_push_message(raw: Any) -> PushMessage:
    message = _as_dict(raw)
    if message is None:
        return UndecodableMessage(raw, "not a JSON object")

    for candidate in (message, _as_dict(message.get("data"))):
        if not candidate:
            continue
        submission_id = candidate.get("submission_id")
        if submission_id not in (None, ""):
            return SubmissionChanged(str(submission_id), candidate.get("event") or message.get("type"))
    return UndecodableMessage(raw, "no submission_id")
