"""Decides whether a whole form is a login or registration form."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from formmemory.config import config
from formmemory.domain.page import FormElement
from formmemory.utils.patterns import (
    AUTH_BUTTON_PATTERN,
    AUTH_CONTEXT_PATTERN,
    AUTH_FORM_KEYWORD_PATTERN,
    CROSS_FIELD_AUTH_PATTERNS,
    REGISTRATION_FIELD_PATTERN,
)

logger = logging.getLogger(__name__)


@dataclass
class FormRule:
    """A named authentication-form predicate."""
    name: str
    matches: Callable[[FormElement], bool]


def _password_count(form: FormElement) -> int:
    return sum(1 for element in form.inputs() if element.type == "password")


def _field_text(form: FormElement) -> str:
    parts = []
    for element in form.inputs():
        parts.extend(part for part in (element.name, element.element_id, element.placeholder) if part)
    return " ".join(parts)


def has_password_field(form: FormElement) -> bool:
    return _password_count(form) >= 1


def has_auth_identity(form: FormElement) -> bool:
    """id, class, name or action mention login, signup or registration."""
    text = " ".join(part for part in (form.element_id, form.class_name, form.name, form.action) if part)
    return bool(text) and bool(AUTH_FORM_KEYWORD_PATTERN.search(text))


def has_auth_field_combination(form: FormElement) -> bool:
    text = _field_text(form)
    return any(pattern.search(text) for pattern in CROSS_FIELD_AUTH_PATTERNS)


def has_auth_button(form: FormElement) -> bool:
    labels = list(form.button_labels)
    labels.extend(element.value for element in form.fields if element.is_button and element.value)
    return bool(AUTH_BUTTON_PATTERN.search(" ".join(labels)))


def has_auth_context(form: FormElement, max_inputs: Optional[int] = None) -> bool:
    """Surrounding text talks about accounts or policies and the form is small."""
    if max_inputs is None:
        max_inputs = config.classifier.context_max_inputs
    if not form.container_text or not AUTH_CONTEXT_PATTERN.search(form.container_text):
        return False
    return sum(1 for _ in form.inputs()) <= max_inputs


def has_password_confirmation(form: FormElement) -> bool:
    return _password_count(form) >= 2


def has_registration_fields(form: FormElement, min_inputs: Optional[int] = None) -> bool:
    """An email field plus confirmation, agreement or name capture fields."""
    if min_inputs is None:
        min_inputs = config.classifier.agreement_min_inputs
    inputs = list(form.inputs())
    if len(inputs) < min_inputs:
        return False
    if not any(element.type == "email" for element in inputs):
        return False
    names = " ".join(element.resolved_name() for element in inputs)
    return bool(REGISTRATION_FIELD_PATTERN.search(names))


DEFAULT_FORM_RULES = [
    FormRule("password-field", has_password_field),
    FormRule("auth-identity", has_auth_identity),
    FormRule("auth-field-combination", has_auth_field_combination),
    FormRule("auth-button", has_auth_button),
    FormRule("auth-context", has_auth_context),
    FormRule("password-confirmation", has_password_confirmation),
    FormRule("registration-fields", has_registration_fields),
]


class FormClassifier:
    """Short-circuit OR over ordered authentication-form rules.

    Evaluated on every save or restore attempt; nothing is cached because
    the form may have changed since the last look.
    """

    def __init__(self, rules: Optional[List[FormRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_FORM_RULES)

    def matching_rule(self, form: FormElement) -> Optional[str]:
        for rule in self.rules:
            if rule.matches(form):
                return rule.name
        return None

    def is_authentication_form(self, form: FormElement) -> bool:
        rule = self.matching_rule(form)
        if rule is not None:
            logger.debug("Form %r treated as authentication form (%s)", form.element_id or form.name, rule)
        return rule is not None
