"""
Tests for FormClassifier.

Authentication-form rules are checked one by one, then as a cascade.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from formmemory.domain.page import FieldElement, FormElement
from formmemory.services.form_classifier import (
    FormClassifier,
    has_auth_button,
    has_auth_context,
    has_auth_field_combination,
    has_auth_identity,
    has_password_confirmation,
    has_password_field,
    has_registration_fields,
)


def make_form(*fields, **kwargs):
    return FormElement(fields=list(fields), **kwargs)


@pytest.fixture
def contact_form():
    return make_form(
        FieldElement(name="name"),
        FieldElement(type="email", name="email"),
        FieldElement(type="textarea", name="message"),
        element_id="contact",
        action="/contact",
        button_labels=["Send"],
    )


@pytest.fixture
def classifier():
    return FormClassifier()


# ============ Rule Tests ============

class TestPasswordRules:

    def test_single_password_field(self):
        form = make_form(FieldElement(name="user"), FieldElement(type="password", name="pw"))
        assert has_password_field(form) is True
        assert has_password_confirmation(form) is False

    def test_two_password_fields(self):
        form = make_form(FieldElement(type="password", name="a"), FieldElement(type="password", name="b"))
        assert has_password_confirmation(form) is True


class TestIdentityRule:

    @pytest.mark.parametrize("kwargs", [
        {"element_id": "login-form"},
        {"class_name": "form signup"},
        {"name": "registration"},
        {"action": "/users/sign_in"},
        {"action": "/kaiin/touroku"},
    ])
    def test_auth_keywords(self, kwargs):
        assert has_auth_identity(make_form(**kwargs)) is True

    def test_plain_form(self, contact_form):
        assert has_auth_identity(contact_form) is False


class TestFieldCombinationRule:

    def test_username_then_password_text(self):
        form = make_form(FieldElement(name="username"), FieldElement(name="pass_hint"))
        assert has_auth_field_combination(form) is True

    def test_email_confirmation(self):
        form = make_form(FieldElement(name="email"), FieldElement(name="email_confirm"))
        assert has_auth_field_combination(form) is True

    def test_first_and_last_name_from_placeholders(self):
        form = make_form(FieldElement(name="a", placeholder="First name"), FieldElement(name="b", placeholder="Last name"))
        assert has_auth_field_combination(form) is True

    def test_contact_form(self, contact_form):
        assert has_auth_field_combination(contact_form) is False


class TestButtonRule:

    @pytest.mark.parametrize("label", ["Log in", "Sign up", "Create an account", "ログイン", "会員登録"])
    def test_auth_labels(self, label):
        assert has_auth_button(make_form(button_labels=[label])) is True

    def test_submit_input_value(self):
        form = make_form(FieldElement(type="submit", value="Sign in"))
        assert has_auth_button(form) is True

    def test_neutral_label(self, contact_form):
        assert has_auth_button(contact_form) is False


class TestContextRule:

    def test_small_form_with_auth_context(self):
        form = make_form(FieldElement(name="q"), container_text="Forgot password? Reset it here.")
        assert has_auth_context(form) is True

    def test_large_form_mentioning_privacy_policy(self):
        fields = [FieldElement(name=f"field{i}") for i in range(9)]
        form = make_form(*fields, container_text="See our privacy policy")
        assert has_auth_context(form) is False

    def test_no_context(self, contact_form):
        assert has_auth_context(contact_form) is False


class TestRegistrationFieldsRule:

    def test_email_with_agreement(self):
        form = make_form(
            FieldElement(name="nickname"),
            FieldElement(type="email", name="email"),
            FieldElement(type="checkbox", name="agree"),
        )
        assert has_registration_fields(form) is True

    def test_needs_three_inputs(self):
        form = make_form(FieldElement(type="email", name="email"), FieldElement(type="checkbox", name="agree"))
        assert has_registration_fields(form) is False

    def test_needs_email_field(self):
        form = make_form(FieldElement(name="a"), FieldElement(name="b"), FieldElement(name="confirm"))
        assert has_registration_fields(form) is False


# ============ Classifier Tests ============

class TestFormClassifier:

    def test_password_form_short_circuits(self, classifier):
        form = make_form(FieldElement(name="user"), FieldElement(type="password", name="secret"))
        assert classifier.matching_rule(form) == "password-field"
        assert classifier.is_authentication_form(form) is True

    def test_contact_form_is_eligible(self, classifier, contact_form):
        assert classifier.is_authentication_form(contact_form) is False

    def test_not_cached_between_calls(self, classifier, contact_form):
        assert classifier.is_authentication_form(contact_form) is False
        contact_form.add_field(FieldElement(type="password", name="pin"))
        assert classifier.is_authentication_form(contact_form) is True

    def test_file_inputs_are_ignored(self, classifier):
        fields = [FieldElement(name=f"f{i}") for i in range(8)] + [FieldElement(type="file", name="upload")]
        form = make_form(*fields, container_text="privacy policy")
        assert classifier.matching_rule(form) == "auth-context"
