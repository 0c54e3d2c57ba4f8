"""
Push Model Verification

Tests that:
1. Bodies over 180 UTF-16 code units are cut to 180 plus "…"
2. The title falls back to the app name only when absent
3. DispatchResult counts successes and failures
4. PushSendResponse has the two documented shapes

Run with: pytest tests/test_push_models.py -v
"""

import pytest
from pydantic import ValidationError

from app.models.push import (
    DEFAULT_NOTIFICATION_TITLE,
    ELLIPSIS,
    MAX_BODY_LENGTH,
    DeliveryOutcome,
    DispatchResult,
    NotificationRequest,
    PushSendResponse,
    truncate_body,
)


class TestTruncateBody:

    def test_short_body_unchanged(self):
        assert truncate_body("Great job today!") == "Great job today!"

    def test_exact_limit_unchanged(self):
        body = "a" * MAX_BODY_LENGTH
        assert truncate_body(body) == body

    def test_one_over_limit_is_cut(self):
        result = truncate_body("a" * (MAX_BODY_LENGTH + 1))
        assert result == "a" * MAX_BODY_LENGTH + ELLIPSIS
        assert len(result) == MAX_BODY_LENGTH + 1

    def test_bmp_characters_count_as_one_unit(self):
        body = "筋" * MAX_BODY_LENGTH
        assert truncate_body(body) == body
        assert truncate_body(body + "トレ") == body + ELLIPSIS

    def test_emoji_counts_as_two_units(self):
        body = "💪" * (MAX_BODY_LENGTH // 2)
        assert truncate_body(body) == body
        assert truncate_body(body + "💪") == body + ELLIPSIS

    def test_surrogate_pair_at_limit_is_not_split(self):
        body = "a" + "💪" * (MAX_BODY_LENGTH // 2)
        assert truncate_body(body) == "a" + "💪" * (MAX_BODY_LENGTH // 2 - 1) + ELLIPSIS


class TestNotificationRequest:

    def test_default_title(self):
        request = NotificationRequest(body="hi")
        assert request.effective_title == DEFAULT_NOTIFICATION_TITLE

    def test_explicit_title(self):
        assert NotificationRequest(title="Coach", body="hi").effective_title == "Coach"

    def test_empty_title_is_kept(self):
        assert NotificationRequest(title="", body="hi").effective_title == ""

    def test_effective_body_truncates(self):
        request = NotificationRequest(body="b" * 200)
        assert request.effective_body == "b" * MAX_BODY_LENGTH + ELLIPSIS
        assert request.body == "b" * 200

    def test_blank_body_rejected(self):
        with pytest.raises(ValidationError):
            NotificationRequest(body=" \t ")

    def test_data_must_be_string_map(self):
        with pytest.raises(ValidationError):
            NotificationRequest(body="hi", data={"n": {"nested": "x"}})


class TestDispatchResult:

    def test_from_outcomes(self):
        result = DispatchResult.from_outcomes([
            DeliveryOutcome(endpoint="a", success=True),
            DeliveryOutcome(endpoint="b", success=False, error="404"),
            DeliveryOutcome(endpoint="c", success=True),
        ])
        assert (result.sent, result.failed, result.reason) == (2, 1, None)

    def test_no_tokens(self):
        result = DispatchResult.no_tokens()
        assert (result.sent, result.failed, result.reason) == (0, 0, "no_tokens")
        assert result.outcomes == []


class TestPushSendResponse:

    def test_delivery_shape(self):
        result = DispatchResult.from_outcomes([DeliveryOutcome(endpoint="a", success=False, error="x")])
        response = PushSendResponse.from_result(result)
        assert response.model_dump(exclude_none=True) == {"ok": True, "sent": 0, "failed": 1}

    def test_no_tokens_shape(self):
        response = PushSendResponse.from_result(DispatchResult.no_tokens())
        assert response.model_dump(exclude_none=True) == {"ok": True, "sent": 0, "reason": "no_tokens"}
