"""Wires the tracker, persistence and restore services to one page."""
import logging
from typing import List, Optional

from formmemory.config import TrackerConfig
from formmemory.domain.models import FormRecord, RestoreResult
from formmemory.domain.page import FormElement, Page
from formmemory.services.change_tracker import ChangeTracker
from formmemory.services.field_classifier import FieldClassifier
from formmemory.services.form_classifier import FormClassifier
from formmemory.services.messaging import StorageClient
from formmemory.services.persistence import PersistenceCoordinator
from formmemory.services.restore import RestoreCoordinator

logger = logging.getLogger(__name__)

FIELD_EVENTS = ("input", "change")


class FormMemoryController:
    """One instance per page load."""

    def __init__(
        self,
        page: Page,
        client: StorageClient,
        scheduler=None,
        tracker_config: Optional[TrackerConfig] = None,
        field_classifier: Optional[FieldClassifier] = None,
        form_classifier: Optional[FormClassifier] = None,
    ):
        self.page = page
        self.field_classifier = field_classifier or FieldClassifier()
        self.form_classifier = form_classifier or FormClassifier()
        self.persistence = PersistenceCoordinator(client, page.location, self.field_classifier)
        self.restorer = RestoreCoordinator(self.persistence, self.form_classifier, self.field_classifier)
        self.tracker = ChangeTracker(
            page,
            self.persistence,
            form_classifier=self.form_classifier,
            scheduler=scheduler,
            tracker_config=tracker_config,
        )
        self.forms: List[FormElement] = []

    def records(self) -> List[FormRecord]:
        return [FormRecord(self.page.location, index, form) for index, form in enumerate(self.forms)]

    async def start(self) -> List[RestoreResult]:
        """Detect forms, restore saved values, then start listening."""
        self.detect_forms()
        logger.info("Found %d forms on page", len(self.forms))
        results = await self.restorer.restore_all(self.records())
        self.attach_listeners()
        self.page.observe(self.on_forms_changed)
        return results

    def detect_forms(self) -> None:
        self.forms = list(self.page.forms)
        self.tracker.set_forms(self.forms)

    def attach_listeners(self) -> None:
        for index, form in enumerate(self.forms):
            inputs = list(form.inputs())
            logger.debug("Form %d: attaching listeners to %d inputs", index, len(inputs))
            for element in inputs:
                for event_type in FIELD_EVENTS:
                    element.add_listener(event_type, self.tracker.on_field_event)
            form.add_listener("submit", self.tracker.on_form_submit)

    def on_forms_changed(self, forms: List[FormElement]) -> None:
        """Replace the tracked set when it grew and re-attach listeners to all of it."""
        if len(forms) <= len(self.forms):
            return
        self.forms = list(forms)
        self.tracker.set_forms(self.forms)
        self.attach_listeners()
        logger.info("Form set changed; now tracking %d forms", len(self.forms))

    def shutdown(self) -> None:
        self.tracker.shutdown()
