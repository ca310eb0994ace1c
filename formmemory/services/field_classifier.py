"""Decides which individual fields must never be stored or restored."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from formmemory.config import config
from formmemory.domain.models import FieldMap
from formmemory.domain.page import FieldElement
from formmemory.utils.patterns import (
    SECURITY_DATA_WORDS,
    SECURITY_NAME_PATTERNS,
    TOKEN_VALUE_PATTERN,
)

logger = logging.getLogger(__name__)


@dataclass
class FieldRule:
    """A named exclusion predicate."""
    name: str
    matches: Callable[[FieldElement, str], bool]


def is_password_field(element: FieldElement, name: str) -> bool:
    return element.type == "password"


def has_security_name(element: FieldElement, name: str) -> bool:
    return any(pattern.search(name) for pattern in SECURITY_NAME_PATTERNS)


def has_token_value(element: FieldElement, name: str, min_length: Optional[int] = None) -> bool:
    """Hidden fields carrying long opaque token-alphabet values."""
    if element.type != "hidden":
        return False
    if min_length is None:
        min_length = config.classifier.hidden_token_min_length
    value = element.value or ""
    return len(value) > min_length and bool(TOKEN_VALUE_PATTERN.fullmatch(value))


def has_security_attribute(element: FieldElement, name: str) -> bool:
    purpose = element.get_attribute("data-purpose") or ""
    return any(
        element.has_attribute(f"data-{word}") or word in purpose
        for word in SECURITY_DATA_WORDS
    )


DEFAULT_FIELD_RULES = [
    FieldRule("password-type", is_password_field),
    FieldRule("security-name", has_security_name),
    FieldRule("hidden-token-value", has_token_value),
    FieldRule("security-attribute", has_security_attribute),
]


class FieldClassifier:
    """Ordered exclusion rules; a field is excluded when any rule matches."""

    def __init__(self, rules: Optional[List[FieldRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_FIELD_RULES)

    def exclusion_reason(self, element: FieldElement, name: Optional[str] = None) -> Optional[str]:
        """Return the name of the first matching rule, or None if the field is safe."""
        name = name if name is not None else element.resolved_name()
        for rule in self.rules:
            if rule.matches(element, name):
                return rule.name
        return None

    def should_exclude(self, element: FieldElement, name: Optional[str] = None) -> bool:
        return self.exclusion_reason(element, name) is not None

    def clean(self, fields: FieldMap) -> FieldMap:
        """Drop stored pairs the rules would reject if seen on a plain text field."""
        cleaned: FieldMap = {}
        for field_name, value in fields.items():
            probe = FieldElement(
                type="text",
                name=field_name,
                value=value if isinstance(value, str) else "",
            )
            reason = self.exclusion_reason(probe, field_name)
            if reason is None:
                cleaned[field_name] = value
            else:
                logger.info("Removed security field from stored data: %s (%s)", field_name, reason)
        return cleaned
