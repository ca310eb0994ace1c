"""Extracts form values and drives save/load round-trips against storage."""
import logging
from typing import Optional, Set

from formmemory.domain.models import FieldMap, PageLocation, StoredEntry
from formmemory.domain.page import FormElement
from formmemory.services.field_classifier import FieldClassifier
from formmemory.services.messaging import StorageClient

logger = logging.getLogger(__name__)


class PersistenceCoordinator:
    """Service for saving and loading the values of a page's forms."""

    def __init__(
        self,
        client: StorageClient,
        location: PageLocation,
        field_classifier: Optional[FieldClassifier] = None,
    ):
        self.client = client
        self.location = location
        self.field_classifier = field_classifier or FieldClassifier()

    def build_key(self, form_index: int) -> str:
        return self.location.storage_key(form_index)

    def extract(self, form: FormElement) -> FieldMap:
        """Current values of the form's safe fields."""
        data: FieldMap = {}
        processed_groups: Set[str] = set()

        for element in form.inputs():
            name = element.resolved_name()

            if element.is_radio:
                if name in processed_groups:
                    continue
                processed_groups.add(name)

            reason = self.field_classifier.exclusion_reason(element, name)
            if reason is not None:
                logger.debug("Skipping security field: %s (%s)", name, reason)
                continue

            if element.is_radio:
                checked = next((member for member in form.radio_group(name) if member.checked), None)
                if checked is not None:
                    data[name] = checked.value or "on"
            elif element.is_checkbox:
                if element.checked:
                    data[name] = element.value if element.value else True
            elif element.value and element.value.strip():
                data[name] = element.value

        return data

    async def save(self, form: FormElement, key: str) -> Optional[StoredEntry]:
        """Persist the form; returns None when there was nothing worth saving."""
        fields = self.extract(form)
        if not fields:
            logger.info("Nothing to save for key: %s", key)
            return None

        entry = StoredEntry(url=self.location.href, fields=fields)
        await self.client.save_form_data(key, entry)
        logger.info("Form data saved with key: %s (%d fields)", key, entry.count)
        return entry

    async def load(self, key: str) -> Optional[StoredEntry]:
        """Fetch an entry, re-clean it and write the cleaned version back if it shrank."""
        entry = await self.client.get_form_data(key)
        if entry is None:
            return None

        cleaned = self.field_classifier.clean(entry.fields)
        if len(cleaned) != len(entry.fields):
            logger.info("Cleaning security fields from saved data for key: %s", key)
            entry = entry.with_fields(cleaned)
            await self.client.save_form_data(key, entry)
        return entry
