"""Service for filling forms with previously saved values."""
import logging
from typing import List, Optional, Sequence

from formmemory.domain.exceptions import FormMemoryError
from formmemory.domain.models import FieldMap, FieldValue, FormRecord, RestoreResult
from formmemory.domain.page import DomEvent, FieldElement, FormElement
from formmemory.services.field_classifier import FieldClassifier
from formmemory.services.form_classifier import FormClassifier
from formmemory.services.persistence import PersistenceCoordinator

logger = logging.getLogger(__name__)

TRUE_TOKEN = "true"


def _notify(element: FieldElement) -> None:
    element.dispatch(DomEvent("input", element, is_trusted=False))
    element.dispatch(DomEvent("change", element, is_trusted=False))


class RestoreCoordinator:
    """Restores saved values into every eligible form on the page."""

    def __init__(
        self,
        persistence: PersistenceCoordinator,
        form_classifier: Optional[FormClassifier] = None,
        field_classifier: Optional[FieldClassifier] = None,
    ):
        self.persistence = persistence
        self.form_classifier = form_classifier or FormClassifier()
        self.field_classifier = field_classifier or persistence.field_classifier

    async def restore_all(self, records: Sequence[FormRecord]) -> List[RestoreResult]:
        """Restore each form; one form failing never stops the others."""
        results = []
        for record in records:
            if self.form_classifier.is_authentication_form(record.form):
                logger.debug("Skipping restore for authentication form %d", record.index)
                continue
            try:
                entry = await self.persistence.load(record.key)
            except FormMemoryError as e:
                logger.error("Failed to load form data for %s: %s", record.key, e)
                continue
            if entry is None:
                continue
            result = self.apply(record.form, entry.fields, key=record.key)
            logger.info("Form %d data restored from key: %s (%d fields)", record.index, record.key, result.applied_count)
            results.append(result)
        return results

    def apply(self, form: FormElement, data: FieldMap, key: str = "") -> RestoreResult:
        """Write stored values onto matching fields, firing synthetic notifications."""
        result = RestoreResult(key=key)
        processed_groups = set()

        for element in form.inputs():
            name = element.resolved_name()
            if name not in data:
                continue
            if element.is_radio and name in processed_groups:
                continue
            if self.field_classifier.should_exclude(element, name):
                result.skipped_count += 1
                continue

            value = data[name]
            try:
                if element.is_radio:
                    processed_groups.add(name)
                    self._apply_radio_group(form, name, value)
                elif element.is_checkbox:
                    self._apply_checkbox(element, value)
                elif isinstance(value, str):
                    element.value = value
                    _notify(element)
                else:
                    result.skipped_count += 1
                    continue
            except (TypeError, ValueError) as e:
                result.errors.append(f"Error restoring '{name}': {e}")
                result.skipped_count += 1
                continue
            result.applied_count += 1

        return result

    @staticmethod
    def _apply_radio_group(form: FormElement, name: str, value: FieldValue) -> None:
        members = form.radio_group(name)
        for member in members:
            member.checked = False
        for member in members:
            if isinstance(value, str) and (member.value or "on") == value:
                member.checked = True
                _notify(member)
                break

    @staticmethod
    def _apply_checkbox(element: FieldElement, value: FieldValue) -> None:
        if isinstance(value, bool):
            element.checked = value
        else:
            element.checked = value == element.value or value == TRUE_TOKEN
        _notify(element)
