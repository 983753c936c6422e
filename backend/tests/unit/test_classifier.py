"""Unit tests for the rule-based classifier."""

import re
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from jobsync.classifier import (
    DEFAULT_RULES,
    calculate_confidence,
    classify_message,
    extract_company,
    extract_role,
    headers_to_dict,
    infer_status,
    is_job_related,
    parse_applied_at,
    parse_gmail_message,
)


class TestRelevanceGate:
    def test_job_keyword_in_subject(self):
        assert is_job_related("Your application to Initech", "", "careers@initech.com")

    def test_keyword_only_in_sender(self):
        assert is_job_related("Hello", "Quick note", "Hooli Recruiter <r@hooli.com>")

    def test_unrelated_message(self):
        assert not is_job_related("Lunch on Friday?", "Want to grab tacos", "friend@gmail.com")

    def test_custom_keyword_table(self):
        rules = replace(DEFAULT_RULES, relevance_keywords=("tacos",))
        assert is_job_related("Lunch on Friday?", "Want to grab tacos", "friend@gmail.com", rules)


class TestExtractCompany:
    def test_domain_rule_fires_first(self):
        assert extract_company("Thanks for applying", "Jane Doe <jane@initech.com>") == "Initech"

    def test_domain_label_before_top_level_suffix(self):
        assert extract_company("Hello", "jobs@careers.globex.com") == "Globex"

    def test_domain_with_second_level_suffix(self):
        assert extract_company("Hello", "jobs@mail.initech.co.uk") == "Initech"

    def test_domain_is_capitalized(self):
        assert extract_company("Hello", "jobs@HOOLI.com") == "Hooli"

    def test_consumer_domain_falls_back_to_display_name(self):
        assert extract_company("Hello", "Globex Careers <careers@gmail.com>") == "Globex"

    def test_display_name_quotes_are_stripped(self):
        assert extract_company("Hello", '"Hooli Talent" <jobs@talent.com>') == "Hooli"

    def test_subject_rule_takes_first_capitalized_token(self):
        assert extract_company("Acme - Software Engineer role", "noreply@gmail.com") == "Acme"

    def test_subject_reply_prefix_is_ignored(self):
        assert extract_company("Re: Software Engineer role at Acme", "noreply@gmail.com") == "Software"

    def test_unknown_company_when_no_rule_fires(self):
        assert extract_company("re: thanks for applying", "noreply@gmail.com") == "Unknown Company"

    def test_unknown_company_with_empty_input(self):
        assert extract_company("", "") == "Unknown Company"


class TestExtractRole:
    def test_role_after_for(self):
        assert extract_role("Your application for Backend Developer at Initech", "") == "Backend Developer"

    def test_role_after_as_a(self):
        assert extract_role("Join us", "We'd love to have you as a Product Designer, starting soon") == "Product Designer"

    def test_capitalized_phrase_before_title_noun(self):
        assert extract_role("Invitation: Senior Data Analyst interview", "") == "Senior Data Analyst"

    def test_canonical_title(self):
        assert extract_role("update: software engineer opening", "") == "software engineer"

    def test_lowercase_phrase_uses_canonical_title(self):
        assert extract_role("senior software engineer interview", "") == "software engineer"

    def test_too_short_match_is_rejected(self):
        assert extract_role("Application for AI at Initech", "") is None

    def test_no_role(self):
        assert extract_role("Hello", "Quick note") is None


class TestInferStatus:
    @pytest.mark.parametrize(
        "subject,snippet,expected",
        [
            ("Interview invitation", "Please pick a time", "interview"),
            ("Your HackerRank assessment", "Complete within 7 days", "assessment"),
            ("Congratulations!", "We are pleased to extend an offer", "offer"),
            ("Update on your application", "Unfortunately we will not be moving forward", "rejected"),
            ("Thank you for applying", "We received your application", "applied"),
        ],
    )
    def test_status_groups(self, subject, snippet, expected):
        assert infer_status(subject, snippet) == expected

    def test_interview_checked_before_rejection(self):
        assert infer_status("Interview update", "Unfortunately the panel was cancelled") == "interview"


class TestParseAppliedAt:
    def test_rfc2822_date(self):
        value, estimated = parse_applied_at("Mon, 06 Oct 2025 14:30:00 +0200")
        assert value == datetime(2025, 10, 6, 12, 30, tzinfo=timezone.utc)
        assert estimated is False

    def test_iso_date(self):
        value, estimated = parse_applied_at("2025-10-06T12:00:00Z")
        assert value == datetime(2025, 10, 6, 12, 0, tzinfo=timezone.utc)
        assert estimated is False

    @pytest.mark.parametrize(
        "header",
        [
            "",
            None,
            "not a date",
            "Fri, 31 Dec 9999 23:30:00 -0100",
            "0001-01-01T00:00:00+01:00",
        ],
    )
    def test_unparseable_date_falls_back_to_now(self, header):
        before = datetime.now(timezone.utc)
        value, estimated = parse_applied_at(header)
        assert estimated is True
        assert before <= value <= datetime.now(timezone.utc)


class TestConfidence:
    def test_base_score(self):
        assert calculate_confidence("Hello", "quick note", "friend@gmail.com") == 0.5

    def test_company_domain_bonus(self):
        assert calculate_confidence("Hello", "note", "jane@initech.com") == 0.7

    def test_more_keywords_never_lower_the_score(self):
        base = calculate_confidence("Hello", "quick note", "friend@gmail.com")
        more = calculate_confidence("Hello", "quick note from a recruiter", "friend@gmail.com")
        most = calculate_confidence("Hello", "quick note from a recruiter about a job position", "friend@gmail.com")
        assert base <= more <= most

    def test_score_is_capped(self):
        score = calculate_confidence(
            "Interview for the position",
            "Recruiter here about your application: hiring for a job, coding test and offer",
            "talent@initech.com",
        )
        assert score == 1.0


class TestClassifyMessage:
    def test_full_classification(self):
        headers = headers_to_dict([
            {"name": "From", "value": "Jane Doe <jane@initech.com>"},
            {"name": "Subject", "value": "Interview for Backend Developer at Initech"},
            {"name": "Date", "value": "Mon, 06 Oct 2025 14:30:00 +0000"},
        ])
        result = classify_message(headers, "Please pick a slot")

        assert result.company == "Initech"
        assert result.role == "Backend Developer"
        assert result.status == "interview"
        assert result.applied_at == datetime(2025, 10, 6, 14, 30, tzinfo=timezone.utc)
        assert result.applied_at_estimated is False
        assert 0.5 < result.confidence <= 1.0

    def test_to_dict_serializes_applied_at(self):
        result = classify_message({"subject": "Hello", "date": "Mon, 06 Oct 2025 14:30:00 +0000"}, "")
        data = result.to_dict()
        assert data["applied_at"] == "2025-10-06T14:30:00+00:00"
        assert set(data) == {"company", "role", "status", "applied_at", "applied_at_estimated", "confidence"}

    def test_out_of_range_date_is_estimated(self):
        before = datetime.now(timezone.utc)
        result = classify_message({"subject": "Interview", "date": "9999-12-31T23:30:00-01:00"}, "")
        assert result.applied_at_estimated is True
        assert before <= result.applied_at <= datetime.now(timezone.utc)

    def test_classify_path_has_no_gate(self):
        headers = {"from": "friend@gmail.com", "subject": "Lunch on Friday?"}
        result = classify_message(headers, "Want to grab tacos")
        assert result.status == "applied"
        assert result.confidence == 0.5

    def test_headers_to_dict_lowercases_names(self):
        assert headers_to_dict([{"name": "X-Custom", "value": "1"}]) == {"x-custom": "1"}


class TestParseGmailMessage:
    def test_gate_rejects_unrelated_message(self, message_factory):
        message = message_factory("m1", subject="Lunch on Friday?", sender="friend@gmail.com", snippet="Tacos?")
        assert parse_gmail_message(message) is None

    def test_sync_path_skips_confidence(self, message_factory):
        result = parse_gmail_message(message_factory("m1"))
        assert result is not None
        assert result.company == "Initech"
        assert result.confidence == 0.0

    def test_custom_status_rules(self, message_factory):
        rules = replace(DEFAULT_RULES, status_rules=(("withdrawn", re.compile(r"withdraw")),))
        message = message_factory("m1", snippet="You chose to withdraw your application")
        assert parse_gmail_message(message, rules).status == "withdrawn"
