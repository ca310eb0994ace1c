"""Save prompt state machine.

Idle -> Dirty on trusted input/change events; Dirty -> Offered when the
debounce timer fires or the form is submitted, unless the owning form looks
like a login or registration form; Offered -> Idle when the user saves,
dismisses or closes the prompt, or when it auto-hides.

Two timer slots are owned here: the debounce timer and the prompt timer
(auto-hide, success feedback and error feedback share one slot).
"""
import asyncio
import logging
from typing import Callable, List, Optional, Set

from formmemory.config import TrackerConfig, config
from formmemory.domain.exceptions import FormMemoryError
from formmemory.domain.models import PromptStatus, SaveOffer, SaveOfferStatus, TrackerState
from formmemory.domain.page import DomEvent, FormElement, Page
from formmemory.services.form_classifier import FormClassifier
from formmemory.services.persistence import PersistenceCoordinator
from formmemory.services.prompt import SuggestPrompt
from formmemory.utils.scheduler import AsyncioScheduler, TimerSlot

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Turns input, change and submit signals into at most one save offer."""

    def __init__(
        self,
        page: Page,
        persistence: PersistenceCoordinator,
        form_classifier: Optional[FormClassifier] = None,
        scheduler=None,
        tracker_config: Optional[TrackerConfig] = None,
        prompt_factory: Callable[..., SuggestPrompt] = SuggestPrompt,
    ):
        self.page = page
        self.persistence = persistence
        self.form_classifier = form_classifier or FormClassifier()
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = tracker_config or config.tracker
        self.prompt_factory = prompt_factory

        self.state = TrackerState.IDLE
        self.offer: Optional[SaveOffer] = None
        self.forms: List[FormElement] = []
        self._dirty_form_index: Optional[int] = None
        self._debounce = TimerSlot(self.scheduler, "debounce")
        self._prompt_timer = TimerSlot(self.scheduler, "prompt")
        self._tasks: Set[asyncio.Task] = set()

    @property
    def has_unsaved_changes(self) -> bool:
        return self.state == TrackerState.DIRTY

    @property
    def dirty_form_index(self) -> Optional[int]:
        return self._dirty_form_index

    def set_forms(self, forms: List[FormElement]) -> None:
        self.forms = list(forms)

    def form_index(self, form: Optional[FormElement]) -> Optional[int]:
        for index, candidate in enumerate(self.forms):
            if candidate is form:
                return index
        return None

    # Event handlers

    def on_field_event(self, event: DomEvent) -> None:
        if not event.is_trusted:
            return
        if self.state == TrackerState.OFFERED:
            return
        index = self.form_index(getattr(event.target, "form", None))
        if index is None:
            return

        self.state = TrackerState.DIRTY
        self._dirty_form_index = index
        self._debounce.schedule(self.config.debounce_seconds, self._on_debounce)

    def on_form_submit(self, event: DomEvent) -> None:
        if not event.is_trusted or self.state != TrackerState.DIRTY:
            return
        index = self.form_index(event.target)
        if index is None:
            return
        self._debounce.cancel()
        self._offer(index)

    def _on_debounce(self) -> None:
        if self.state != TrackerState.DIRTY or self._dirty_form_index is None:
            return
        self._offer(self._dirty_form_index)

    # Offer lifecycle

    def _offer(self, form_index: int) -> None:
        if self.offer is not None and self.offer.is_shown:
            return
        if self.page.prompts:
            logger.debug("A save prompt is already in the document; dropping new offer")
            return

        form = self.forms[form_index]
        if self.form_classifier.is_authentication_form(form):
            logger.debug("Form %d looks like an authentication form; not offering to save", form_index)
            return

        offer = SaveOffer(form_index=form_index)
        prompt = self.prompt_factory(self.page, on_save=self.request_save, on_dismiss=self.dismiss)
        offer.prompt = prompt
        self.offer = offer
        prompt.show(form_index)
        offer.status = SaveOfferStatus.SHOWN
        self.state = TrackerState.OFFERED
        self._prompt_timer.schedule(self.config.auto_hide_seconds, self._on_auto_hide)
        logger.info("Offering to save form %d", form_index)

    def _on_auto_hide(self) -> None:
        self._resolve("auto-hide")

    def dismiss(self) -> None:
        self._resolve("dismiss")

    def _resolve(self, reason: str, offer: Optional[SaveOffer] = None) -> None:
        if offer is not None and offer is not self.offer:
            return
        self._debounce.cancel()
        self._prompt_timer.cancel()
        if self.offer is not None:
            if self.offer.prompt is not None:
                self.offer.prompt.close()
            self.offer.status = SaveOfferStatus.NONE
            self.offer = None
        self.state = TrackerState.IDLE
        self._dirty_form_index = None
        logger.debug("Save offer resolved (%s)", reason)

    # Saving

    def request_save(self, form_index: Optional[int] = None) -> None:
        """Prompt callback: start the save without blocking the event handler."""
        task = asyncio.get_running_loop().create_task(self.save_offer())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def save_offer(self) -> bool:
        offer = self.offer
        if offer is None or not offer.is_shown:
            return False
        prompt = offer.prompt
        form = self.forms[offer.form_index]

        if self.form_classifier.is_authentication_form(form):
            self._resolve("ineligible", offer)
            return False

        prompt.set_status(PromptStatus.SAVING)
        key = self.persistence.build_key(offer.form_index)
        try:
            await self.persistence.save(form, key)
        except FormMemoryError as e:
            logger.error("Failed to save form data for %s: %s", key, e)
            if self.offer is offer:
                prompt.set_status(PromptStatus.ERROR)
                self._prompt_timer.schedule(self.config.error_feedback_seconds, lambda: self._reset_after_error(offer))
            return False

        if self.offer is offer:
            prompt.set_status(PromptStatus.SUCCESS)
            self._prompt_timer.schedule(self.config.success_feedback_seconds, lambda: self._resolve("saved", offer))
        return True

    def _reset_after_error(self, offer: SaveOffer) -> None:
        if offer is not self.offer:
            return
        offer.prompt.set_status(PromptStatus.READY)
        self._prompt_timer.schedule(self.config.auto_hide_seconds, self._on_auto_hide)

    async def drain(self) -> None:
        """Wait for saves started from prompt clicks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def shutdown(self) -> None:
        self._resolve("shutdown")
