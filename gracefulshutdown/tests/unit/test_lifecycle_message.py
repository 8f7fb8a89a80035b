"""
Unit tests for lifecycle hook message decoding.
"""

import json

from gracefulshutdown.managers.lifecycle_message import (
    TERMINATING_TRANSITION,
    LifecycleHookMessage,
    decode_message,
)

MESSAGE = {
    "AutoScalingGroupName": "my-autoscaling-group",
    "Service": "AWS Auto Scaling",
    "Time": "2016-02-26T10:00:00.000Z",
    "AccountId": "123456789012",
    "LifecycleTransition": "autoscaling:EC2_INSTANCE_TERMINATING",
    "RequestId": "b5a4d5b2-8c5a-4b5e-9d9b-0c0d5f5d8e6f",
    "LifecycleActionToken": "my-lifecycle-token",
    "EC2InstanceId": "i-1db84ae3",
    "LifecycleHookName": "my-lifecycle-hook",
}


class TestDecodeMessage:
    """Tests for decode_message."""

    def test_decode_full_message(self):
        message = decode_message(json.dumps(MESSAGE))

        assert message == LifecycleHookMessage(
            auto_scaling_group_name="my-autoscaling-group",
            lifecycle_hook_name="my-lifecycle-hook",
            ec2_instance_id="i-1db84ae3",
            lifecycle_transition=TERMINATING_TRANSITION,
            lifecycle_action_token="my-lifecycle-token",
            service="AWS Auto Scaling",
            time="2016-02-26T10:00:00.000Z",
            account_id="123456789012",
            request_id="b5a4d5b2-8c5a-4b5e-9d9b-0c0d5f5d8e6f",
        )
        assert message.is_terminating()

    def test_decode_bytes(self):
        message = decode_message(json.dumps(MESSAGE).encode("utf-8"))

        assert message is not None
        assert message.ec2_instance_id == "i-1db84ae3"

    def test_missing_fields_are_empty(self):
        message = decode_message('{"EC2InstanceId": "i-1", "LifecycleActionToken": null}')

        assert message is not None
        assert message.ec2_instance_id == "i-1"
        assert message.lifecycle_hook_name == ""
        assert message.lifecycle_action_token == ""
        assert not message.is_terminating()

    def test_unknown_fields_ignored(self):
        data = dict(MESSAGE, Extra={"nested": True})

        assert decode_message(json.dumps(data)) is not None

    def test_not_json(self):
        assert decode_message("message") is None
        assert decode_message(b"\xff\xfe") is None
        assert decode_message("") is None

    def test_not_an_object(self):
        assert decode_message("[1, 2, 3]") is None
        assert decode_message('"text"') is None

    def test_wrong_field_type(self):
        data = dict(MESSAGE, EC2InstanceId=12345)

        assert decode_message(json.dumps(data)) is None

    def test_test_notification_is_not_terminating(self):
        message = decode_message(
            json.dumps(
                {
                    "AutoScalingGroupName": "my-autoscaling-group",
                    "Service": "AWS Auto Scaling",
                    "Event": "autoscaling:TEST_NOTIFICATION",
                }
            )
        )

        assert message is not None
        assert not message.is_terminating()
