"""
Submission Validation Module

Rule-based checks for catalog submissions, built the same way as a data
quality suite: a validator holds a list of checks, every check produces a
named ``ValidationCheck``, and the suite result aggregates every failing
message so the caller can report all of them at once.

Also home to the input sanitizer and tag parser applied before storage.
"""

import ipaddress
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import structlog

from webhub.database.models import ItemCategory

logger = structlog.get_logger(__name__)

VALID_CATEGORIES = [c.value for c in ItemCategory]
DANGEROUS_SCHEMES = {"javascript", "data", "file"}
VIDEO_HOSTS = ("youtube.com", "youtu.be")
PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
]

MAX_STRING_LENGTH = 1000
MAX_TAGS = 10
MAX_TAG_LENGTH = 30

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    checks: List[ValidationCheck] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def errors(self) -> List[str]:
        return [c.message for c in self.checks if not c.passed]

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": self.errors}


# =============================================================================
# PRIMITIVES
# =============================================================================

def sanitize_string(value: Any) -> str:
    """
    Trim, drop angle brackets and cap at 1000 characters.

    This is a defense-in-depth measure against the most obvious markup
    injection, NOT an HTML sanitizer: entities, attributes and other markup
    survive. Anything rendering user text must still escape it.
    """
    if not isinstance(value, str):
        return ""
    return re.sub(r"[<>]", "", value.strip())[:MAX_STRING_LENGTH]


def parse_tags(raw: Any) -> List[str]:
    """
    Parse a comma-separated tag string.

    Lower-cases and trims each entry, drops empty and over-long (>30 chars)
    ones, removes duplicates keeping first-seen order, and keeps at most 10.
    A list input is treated as already split.
    """
    if not raw:
        return []
    parts = raw.split(",") if isinstance(raw, str) else [str(p) for p in raw]

    tags: List[str] = []
    for part in parts:
        tag = part.strip().lower()
        if 0 < len(tag) <= MAX_TAG_LENGTH and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def validate_email(email: Any) -> bool:
    """Loose ``local@domain.tld`` shape check"""
    return isinstance(email, str) and bool(_EMAIL_RE.match(email))


def _is_local_host(hostname: str) -> bool:
    if hostname == "localhost":
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    if address.version == 6:
        return address.is_loopback
    return any(address in network for network in PRIVATE_NETWORKS)


def validate_webapp_url(url: Any) -> Tuple[bool, Optional[str]]:
    """
    Check a submitted webapp URL.

    HTTPS only, no localhost or private-range hosts, no javascript:/data:/file:.

    Returns:
        (valid, error message or None)
    """
    if not isinstance(url, str) or not url.strip():
        return False, "Invalid URL format"

    try:
        parts = urlsplit(url.strip())
        parts.port  # raises on a malformed port
    except ValueError:
        return False, "Invalid URL format"

    scheme = parts.scheme.lower()
    if not scheme:
        return False, "Invalid URL format"
    if scheme in DANGEROUS_SCHEMES:
        return False, "Protocol not allowed"
    if scheme != "https":
        return False, "URL must use HTTPS"

    hostname = (parts.hostname or "").lower()
    if not hostname:
        return False, "Invalid URL format"
    if _is_local_host(hostname):
        return False, "Local URLs not allowed"

    return True, None


def _hostname(url: str) -> Optional[str]:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts.hostname.lower()


# =============================================================================
# VALIDATOR
# =============================================================================

class SubmissionValidator:
    """
    Catalog submission validator.

    Example:
        validator = SubmissionValidator()
        validator.add_length_check("name", 3, 100, "Name must be between 3 and 100 characters")
        result = validator.validate({"name": "ab"})
        result.errors  # ["Name must be between 3 and 100 characters"]
    """

    def __init__(self):
        self._checks: List[Callable[[Mapping[str, Any]], ValidationCheck]] = []

    def add_length_check(
        self,
        field_name: str,
        min_length: int,
        max_length: int,
        message: str,
    ) -> "SubmissionValidator":
        """Required string whose length must fall in [min_length, max_length]"""
        def check(data: Mapping[str, Any]) -> ValidationCheck:
            value = data.get(field_name)
            passed = isinstance(value, str) and min_length <= len(value) <= max_length
            return ValidationCheck(name=f"length_{field_name}", passed=passed, message=message)

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        field_name: str,
        allowed: Sequence[str],
        message: str,
    ) -> "SubmissionValidator":
        """Value must be one of ``allowed``"""
        def check(data: Mapping[str, Any]) -> ValidationCheck:
            value = data.get(field_name)
            passed = isinstance(value, str) and value in allowed
            return ValidationCheck(name=f"enum_{field_name}", passed=passed, message=message)

        self._checks.append(check)
        return self

    def add_webapp_url_check(self, field_name: str = "url") -> "SubmissionValidator":
        """Public HTTPS URL check"""
        def check(data: Mapping[str, Any]) -> ValidationCheck:
            passed, error = validate_webapp_url(data.get(field_name))
            return ValidationCheck(name=f"url_{field_name}", passed=passed, message=error or "")

        self._checks.append(check)
        return self

    def add_host_check(
        self,
        field_name: str,
        hosts: Sequence[str],
        wrong_host_message: str,
        invalid_message: str,
    ) -> "SubmissionValidator":
        """Optional URL whose hostname must contain one of ``hosts``"""
        def check(data: Mapping[str, Any]) -> ValidationCheck:
            value = data.get(field_name)
            name = f"host_{field_name}"
            if not value:
                return ValidationCheck(name=name, passed=True)

            hostname = _hostname(value) if isinstance(value, str) else None
            if hostname is None:
                return ValidationCheck(name=name, passed=False, message=invalid_message)
            if not any(host in hostname for host in hosts):
                return ValidationCheck(name=name, passed=False, message=wrong_host_message)
            return ValidationCheck(name=name, passed=True)

        self._checks.append(check)
        return self

    def add_link_check(self, field_name: str, message: str) -> "SubmissionValidator":
        """Optional http(s) URL with a hostname"""
        def check(data: Mapping[str, Any]) -> ValidationCheck:
            value = data.get(field_name)
            name = f"link_{field_name}"
            if not value:
                return ValidationCheck(name=name, passed=True)

            passed = (
                isinstance(value, str)
                and _hostname(value) is not None
                and urlsplit(value.strip()).scheme.lower() in ("http", "https")
            )
            return ValidationCheck(name=name, passed=passed, message=message)

        self._checks.append(check)
        return self

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        """Run every check; failures are collected, never short-circuited."""
        result = ValidationResult(checks=[check(data) for check in self._checks])

        if not result.valid:
            logger.info("Submission rejected", errors=result.errors)
        return result


def create_submission_validator() -> SubmissionValidator:
    """Pre-configured validator for catalog item submissions"""
    return (
        SubmissionValidator()
        .add_length_check("name", 3, 100, "Name must be between 3 and 100 characters")
        .add_webapp_url_check("url")
        .add_enum_check("category", VALID_CATEGORIES, "Invalid category")
        .add_length_check(
            "description_short", 20, 200,
            "Short description must be between 20 and 200 characters",
        )
        .add_host_check("github_url", ["github.com"], "GitHub URL must be from github.com", "Invalid GitHub URL")
        .add_host_check("video_url", VIDEO_HOSTS, "Video URL must be from YouTube", "Invalid video URL")
        .add_link_check("image_url", "Invalid image URL")
    )


_submission_validator = create_submission_validator()


def validate_submission(data: Mapping[str, Any]) -> ValidationResult:
    """Validate a catalog item submission"""
    return _submission_validator.validate(data)
