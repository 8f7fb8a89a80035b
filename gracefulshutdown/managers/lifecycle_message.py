"""
GRACEFULSHUTDOWN - Lifecycle Hook Message

Decoding of autoscaling lifecycle hook notifications.
"""

import json
from dataclasses import dataclass
from typing import Optional, Union

TERMINATING_TRANSITION = "autoscaling:EC2_INSTANCE_TERMINATING"

# JSON key -> dataclass field
_FIELDS = {
    "AutoScalingGroupName": "auto_scaling_group_name",
    "LifecycleHookName": "lifecycle_hook_name",
    "EC2InstanceId": "ec2_instance_id",
    "LifecycleTransition": "lifecycle_transition",
    "LifecycleActionToken": "lifecycle_action_token",
    "Service": "service",
    "Time": "time",
    "AccountId": "account_id",
    "RequestId": "request_id",
}


@dataclass(frozen=True)
class LifecycleHookMessage:
    """A decoded lifecycle hook notification."""

    auto_scaling_group_name: str = ""
    lifecycle_hook_name: str = ""
    ec2_instance_id: str = ""
    lifecycle_transition: str = ""
    lifecycle_action_token: str = ""

    # Informational
    service: str = ""
    time: str = ""
    account_id: str = ""
    request_id: str = ""

    def is_terminating(self) -> bool:
        return self.lifecycle_transition == TERMINATING_TRANSITION


def decode_message(raw: Union[str, bytes]) -> Optional[LifecycleHookMessage]:
    """
    Decode a raw notification body.

    Only checks structure: the body must be a JSON object whose known keys
    hold strings. Missing or null keys decode as empty strings, unknown keys are
    ignored. Hook name, transition and instance id are not checked here.

    Args:
        raw: Notification body

    Returns:
        LifecycleHookMessage, or None if the body is not a valid notification
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None

    if not isinstance(data, dict):
        return None

    values = {}
    for key, field_name in _FIELDS.items():
        value = data.get(key)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            return None
        values[field_name] = value

    return LifecycleHookMessage(**values)
