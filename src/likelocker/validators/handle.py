"""
Bluesky actor identifier validation.

Accepted:
- handles: domain names such as `alice.bsky.social` or `example.com`
- DIDs: `did:plc:...` or `did:web:...`

Rejected with a user-facing reason:
- empty input, a leading `@`, profile URLs, single-label names, bad
  characters, labels starting/ending with `-`, over-long names, numeric TLDs
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    """Identifier validation result."""

    valid: bool
    handle: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


# Domain handle rules: https://atproto.com/specs/handle
MAX_HANDLE_LENGTH = 253
MAX_LABEL_LENGTH = 63
LABEL_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")

DID_PATTERN = re.compile(r"^did:(plc|web):[A-Za-z0-9._:%-]+$")


def validate_handle(value: str) -> ValidationResult:
    """
    Validate a Bluesky handle or DID.

    Args:
        value: Raw identifier from configuration.

    Returns:
        ValidationResult with the normalized identifier (handles lowercased,
        DIDs unchanged) or a reason.
    """
    if not value or not value.strip():
        return ValidationResult(valid=False, error="Handle must not be empty")

    raw = value.strip()

    if raw.startswith("did:"):
        if DID_PATTERN.match(raw):
            return ValidationResult(valid=True, handle=raw)
        return ValidationResult(
            valid=False,
            error="DID must look like did:plc:<id> or did:web:<domain>",
        )

    if raw.startswith("@"):
        return ValidationResult(
            valid=False,
            error="Drop the leading @ (use alice.bsky.social, not @alice.bsky.social)",
        )

    if "://" in raw or "/" in raw:
        return ValidationResult(
            valid=False,
            error="Use the bare handle, not a profile URL (e.g. alice.bsky.social)",
        )

    if len(raw) > MAX_HANDLE_LENGTH:
        return ValidationResult(
            valid=False,
            error=f"Handle is too long ({len(raw)} characters, at most {MAX_HANDLE_LENGTH})",
        )

    labels = raw.split(".")
    if len(labels) < 2:
        return ValidationResult(
            valid=False,
            error="Handle must be a domain name with a dot, e.g. alice.bsky.social",
        )

    for label in labels:
        if not label:
            return ValidationResult(valid=False, error="Handle contains an empty segment (..)")
        if len(label) > MAX_LABEL_LENGTH:
            return ValidationResult(
                valid=False,
                error=f"Handle segment {label[:16]}... is longer than {MAX_LABEL_LENGTH} characters",
            )
        if not LABEL_PATTERN.match(label):
            invalid_chars = set(re.findall(r"[^A-Za-z0-9-]", label))
            if invalid_chars:
                return ValidationResult(
                    valid=False,
                    error=f"Handle contains invalid characters: {', '.join(sorted(invalid_chars))}",
                )
            return ValidationResult(
                valid=False,
                error=f"Handle segment {label!r} must not start or end with '-'",
            )

    if labels[-1][0].isdigit():
        return ValidationResult(valid=False, error="Top-level domain must not start with a digit")

    return ValidationResult(valid=True, handle=raw.lower())
