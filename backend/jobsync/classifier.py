"""
Rule-based classification of job application emails.

Every rule set lives in an immutable ``ClassifierRules`` value so callers can
swap keyword tables (tests, locales) without touching module state. The
extractors are ordered tables: the first rule that produces a value wins.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Pattern, Tuple

from .models import UNKNOWN_COMPANY


@dataclass(frozen=True)
class ClassifierRules:
    """Keyword and pattern tables used by the classifier."""

    relevance_keywords: Tuple[str, ...] = (
        "application", "applied", "interview", "assessment", "coding test",
        "recruiter", "hiring", "position", "role", "job", "career",
        "opportunity", "talent", "candidate", "resume", "cv",
    )
    confidence_keywords: Tuple[str, ...] = (
        "application", "applied", "interview", "assessment", "coding test",
        "recruiter", "hiring", "position", "role", "job", "career",
        "opportunity", "candidate", "resume", "onsite", "offer",
        "take-home", "hackerrank", "thank you for applying",
    )
    consumer_domains: FrozenSet[str] = frozenset(
        {"gmail", "outlook", "yahoo", "hotmail", "recruiting", "talent"}
    )
    # Second-level labels such as the "co" in "acme.co.uk"
    second_level_labels: FrozenSet[str] = frozenset({"co", "com", "ac", "org", "net", "gov", "edu"})
    # Display names that never name an employer; skipped by the display-name rule
    automated_senders: FrozenSet[str] = frozenset(
        {"noreply", "no-reply", "donotreply", "do-not-reply", "notifications", "notification",
         "mailer-daemon", "info", "hello", "team"}
    )
    # Reply/forward markers stripped before the subject rule looks for a capitalized token
    subject_prefix: Pattern = re.compile(r"^\s*(?:(?:re|fwd?|aw|sv)\s*:\s*)+", re.I)
    subject_separators: Pattern = re.compile(r"[\s\-|—]+")
    role_patterns: Tuple[Pattern, ...] = (
        re.compile(
            r"\b(?:for|as|position|role)\s+(?:a\s+)?(?!at\b|with\b)"
            r"([^,.\n]+?)(?=\s+at\b|\s+with\b|\s*,|\s*\.|\s*\n|$)",
            re.I,
        ),
        # Case-sensitive and keeps the title noun; lower-case canonical titles fall to the next pattern
        re.compile(
            r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
            r"(?:Engineer|Developer|Manager|Analyst|Specialist|Lead|Director))\b"
        ),
        re.compile(
            r"(Software Engineer|Product Manager|Data Scientist|Frontend Developer"
            r"|Backend Developer|Full Stack Developer)",
            re.I,
        ),
    )
    role_min_length: int = 2
    role_max_length: int = 100
    # Checked in order against lower-cased text, first match wins
    status_rules: Tuple[Tuple[str, Pattern], ...] = (
        ("interview", re.compile(r"interview|onsite|screen|schedule|meet|call")),
        ("assessment", re.compile(r"assessment|take[- ]home|cod(?:e|ing)|hackerrank|test")),
        ("offer", re.compile(r"offer|congratulations|pleased to|happy to")),
        ("rejected", re.compile(r"rejected|declined|unfortunately|not moving forward|not selected")),
    )
    default_status: str = "applied"
    status_signal: Pattern = re.compile(r"interview|assessment|offer|rejected")
    unknown_company: str = UNKNOWN_COMPANY


DEFAULT_RULES = ClassifierRules()


@dataclass(frozen=True)
class ClassificationResult:
    company: str
    role: Optional[str]
    status: str
    applied_at: datetime
    # True when the Date header was unusable and "now" was substituted
    applied_at_estimated: bool = False
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "role": self.role,
            "status": self.status,
            "applied_at": self.applied_at.isoformat(),
            "applied_at_estimated": self.applied_at_estimated,
            "confidence": self.confidence,
        }


def headers_to_dict(headers: List[Dict[str, str]]) -> Dict[str, str]:
    """Gmail ``[{name, value}]`` headers as a mapping with lower-cased names."""
    result: Dict[str, str] = {}
    for header in headers or []:
        name = header.get("name")
        if name:
            result[name.lower()] = header.get("value", "")
    return result


def is_job_related(subject: str, snippet: str, sender: str, rules: ClassifierRules = DEFAULT_RULES) -> bool:
    text = f"{subject} {snippet} {sender}".lower()
    return any(keyword in text for keyword in rules.relevance_keywords)


# Employer extraction

def _sender_domain(sender: str) -> Optional[str]:
    match = re.search(r"@([A-Za-z0-9.\-]+)", sender or "")
    if not match:
        return None
    return match.group(1).strip(".").lower() or None


def _domain_label(sender: str, rules: ClassifierRules) -> Optional[str]:
    """The label immediately before the top-level suffix: ``jobs.initech.co.uk`` -> ``initech``."""
    domain = _sender_domain(sender)
    if not domain:
        return None
    labels = [label for label in domain.split(".") if label]
    if len(labels) < 2:
        return None
    if len(labels) >= 3 and len(labels[-1]) == 2 and labels[-2] in rules.second_level_labels:
        return labels[-3]
    return labels[-2]


def _company_from_domain(subject: str, sender: str, rules: ClassifierRules) -> Optional[str]:
    label = _domain_label(sender, rules)
    if not label or label in rules.consumer_domains:
        return None
    return label[:1].upper() + label[1:].lower()


def _company_from_display_name(subject: str, sender: str, rules: ClassifierRules) -> Optional[str]:
    match = re.match(r"^([^<@]+)", sender or "")
    if not match:
        return None
    words = match.group(1).strip().replace('"', "").replace("'", "").split()
    if not words or words[0].lower() in rules.automated_senders:
        return None
    return words[0]


def _company_from_subject(subject: str, sender: str, rules: ClassifierRules) -> Optional[str]:
    stripped = rules.subject_prefix.sub("", subject or "")
    for word in rules.subject_separators.split(stripped):
        if len(word) > 2 and re.match(r"[A-Z]", word):
            return word
    return None


COMPANY_EXTRACTORS: Tuple[Callable[[str, str, ClassifierRules], Optional[str]], ...] = (
    _company_from_domain,
    _company_from_display_name,
    _company_from_subject,
)


def extract_company(subject: str, sender: str, rules: ClassifierRules = DEFAULT_RULES) -> str:
    for extractor in COMPANY_EXTRACTORS:
        company = extractor(subject, sender, rules)
        if company:
            return company
    return rules.unknown_company


def extract_role(subject: str, snippet: str, rules: ClassifierRules = DEFAULT_RULES) -> Optional[str]:
    text = f"{subject} {snippet}"
    for pattern in rules.role_patterns:
        match = pattern.search(text)
        if match and match.group(1):
            role = match.group(1).strip()
            if rules.role_min_length < len(role) < rules.role_max_length:
                return role
    return None


def infer_status(subject: str, snippet: str, rules: ClassifierRules = DEFAULT_RULES) -> str:
    text = f"{subject} {snippet}".lower()
    for status, pattern in rules.status_rules:
        if pattern.search(text):
            return status
    return rules.default_status


def parse_applied_at(date_header: Optional[str]) -> Tuple[datetime, bool]:
    """
    Parse a Date header into an aware UTC datetime.

    Returns ``(value, estimated)``. Unparseable input falls back to the current
    time with ``estimated=True``; the real send date is lost in that case.
    """
    value = (date_header or "").strip()
    if not value:
        return datetime.now(timezone.utc), True
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(timezone.utc), True
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        # Dates at the edge of the calendar can leave the representable range in UTC
        return parsed.astimezone(timezone.utc), False
    except (OverflowError, ValueError):
        return datetime.now(timezone.utc), True


def calculate_confidence(subject: str, snippet: str, sender: str, rules: ClassifierRules = DEFAULT_RULES) -> float:
    text = f"{subject} {snippet} {sender}".lower()
    confidence = 0.5

    matched = [keyword for keyword in rules.confidence_keywords if keyword in text]
    confidence += 0.1 * len(matched)

    label = _domain_label(sender, rules)
    if label and label not in rules.consumer_domains:
        confidence += 0.2

    if rules.status_signal.search(text):
        confidence += 0.2

    return round(min(confidence, 1.0), 2)


def classify_message(
    headers: Mapping[str, str],
    snippet: str,
    rules: ClassifierRules = DEFAULT_RULES,
    with_confidence: bool = True,
) -> ClassificationResult:
    """Classify one message from lower-cased headers and its snippet. No relevance gate."""
    subject = headers.get("subject", "") or ""
    sender = headers.get("from", "") or ""
    snippet = snippet or ""

    applied_at, estimated = parse_applied_at(headers.get("date"))
    return ClassificationResult(
        company=extract_company(subject, sender, rules),
        role=extract_role(subject, snippet, rules),
        status=infer_status(subject, snippet, rules),
        applied_at=applied_at,
        applied_at_estimated=estimated,
        confidence=calculate_confidence(subject, snippet, sender, rules) if with_confidence else 0.0,
    )


def parse_gmail_message(message: Dict[str, Any], rules: ClassifierRules = DEFAULT_RULES) -> Optional[ClassificationResult]:
    """Sync-path classification: returns None when the message fails the relevance gate."""
    headers = message.get("headers", {})
    snippet = message.get("snippet", "") or ""
    if not is_job_related(headers.get("subject", ""), snippet, headers.get("from", ""), rules):
        return None
    return classify_message(headers, snippet, rules, with_confidence=False)
