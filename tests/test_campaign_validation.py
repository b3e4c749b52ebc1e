"""
Unit tests for marketing campaign validation
"""
from datetime import datetime, timedelta, timezone

from puppyday.domain.campaigns.validation import (
    validate_ab_test_config,
    validate_campaign_type,
    validate_complete_campaign,
    validate_message_content,
    validate_scheduling,
    validate_segment_criteria,
)

NOW = datetime(2030, 1, 7, 18, 0, tzinfo=timezone.utc)


def fields(result):
    return [e["field"] for e in result["errors"]]


def test_campaign_type():
    assert validate_campaign_type("one_time")["is_valid"]
    assert validate_campaign_type(None)["errors"][0]["message"] == "Please select a campaign type"
    assert validate_campaign_type("weekly")["errors"][0]["message"] == "Invalid campaign type"


class TestSegmentCriteria:
    def test_requires_a_filter(self):
        assert fields(validate_segment_criteria({})) == ["segment_criteria"]
        assert fields(validate_segment_criteria({"pet_size": []})) == ["segment_criteria"]
        assert validate_segment_criteria({"pet_size": ["small"]})["is_valid"]
        assert validate_segment_criteria({"has_upcoming_appointment": False})["is_valid"]

    def test_ranges(self):
        result = validate_segment_criteria(
            {"min_visits": 5, "max_visits": 2, "min_appointments": 3, "max_appointments": 1}
        )
        assert fields(result) == ["visits", "appointments"]

    def test_negative_values(self):
        result = validate_segment_criteria({"last_visit_days": -1, "min_total_spend": -5})
        assert fields(result) == ["last_visit_days", "min_total_spend"]


class TestMessageContent:
    def test_sms(self):
        assert fields(validate_message_content("sms", {})) == ["sms_body"]
        too_long = validate_message_content("sms", {"sms_body": "x" * 161})
        assert too_long["errors"][0]["message"] == "SMS message must be 160 characters or less"
        assert validate_message_content("sms", {"sms_body": "x" * 160})["is_valid"]

    def test_email(self):
        assert fields(validate_message_content("email", {"email_subject": "  "})) == ["email_subject", "email_body"]
        result = validate_message_content("email", {"email_subject": "s" * 101, "email_body": "b" * 5001})
        assert [e["message"] for e in result["errors"]] == [
            "Email subject must be 100 characters or less",
            "Email body must be 5000 characters or less",
        ]

    def test_both_checks_each_channel(self):
        result = validate_message_content("both", {"sms_body": "hi"})
        assert fields(result) == ["email_subject", "email_body"]


class TestAbTestConfig:
    def test_disabled_is_valid(self):
        assert validate_ab_test_config(None, "sms")["is_valid"]
        assert validate_ab_test_config({"enabled": False, "split_percentage": 500}, "sms")["is_valid"]

    def test_enabled_checks_variants(self):
        result = validate_ab_test_config(
            {"enabled": True, "split_percentage": 120, "variant_a": {"sms_body": "A"}, "variant_b": {}}, "sms"
        )
        assert fields(result) == ["split_percentage", "variant_b"]


class TestScheduling:
    def test_send_now_needs_no_time(self):
        assert validate_scheduling(True, None, False, now=NOW)["is_valid"]

    def test_scheduled_time_rules(self):
        assert validate_scheduling(False, None, False, now=NOW)["errors"][0]["message"] == (
            "Please select a date and time for scheduled send"
        )
        past = validate_scheduling(False, NOW - timedelta(minutes=1), False, now=NOW)
        assert past["errors"][0]["message"] == "Scheduled time must be in the future"
        far = validate_scheduling(False, (NOW + timedelta(days=366)).isoformat(), False, now=NOW)
        assert far["errors"][0]["message"] == "Cannot schedule more than 1 year in advance"
        assert validate_scheduling(False, "2030-01-08T09:00:00Z", False, now=NOW)["is_valid"]

    def test_naive_times_are_utc(self):
        assert not validate_scheduling(False, datetime(2030, 1, 7, 17, 0), False, now=NOW)["is_valid"]
        assert validate_scheduling(False, datetime(2030, 1, 7, 19, 0), False, now=NOW)["is_valid"]

    def test_recurring(self):
        result = validate_scheduling(True, None, True, {"frequency": "weekly"}, now=NOW)
        assert fields(result) == ["recurring_day_of_week", "recurring_time"]
        monthly = validate_scheduling(True, None, True, {"frequency": "monthly", "time": "09:00"}, now=NOW)
        assert fields(monthly) == ["recurring_day_of_month"]
        assert fields(validate_scheduling(True, None, True, {}, now=NOW)) == ["recurring_frequency", "recurring_time"]


def test_complete_campaign_collects_every_error():
    result = validate_complete_campaign({"name": "", "channel": "fax", "type": None}, now=NOW)
    assert fields(result) == ["name", "channel", "type", "segment_criteria", "scheduled_at"]


def test_complete_campaign_valid():
    result = validate_complete_campaign(
        {
            "name": "Spring Refresh",
            "type": "one_time",
            "channel": "both",
            "segment_criteria": {"last_visit_days": 90},
            "message_content": {"sms_body": "Hi {first_name}!", "email_subject": "Spring", "email_body": "Hello"},
            "send_now": True,
        },
        now=NOW,
    )
    assert result == {"is_valid": True, "errors": []}
