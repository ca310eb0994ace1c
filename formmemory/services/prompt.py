"""Headless save prompt widget."""
import logging
from typing import Callable, Optional

from formmemory.domain.models import PromptStatus
from formmemory.domain.page import Page

logger = logging.getLogger(__name__)

MESSAGE = "Save this form?"
SAVE_LABELS = {
    PromptStatus.READY: "Save",
    PromptStatus.SAVING: "Saving...",
    PromptStatus.SUCCESS: "Saved",
    PromptStatus.ERROR: "Save failed",
}


class SuggestPrompt:
    """The 'save this form?' widget; emits save-form and dismiss signals."""

    def __init__(
        self,
        page: Page,
        on_save: Callable[[int], None],
        on_dismiss: Callable[[], None],
    ):
        self.page = page
        self.on_save = on_save
        self.on_dismiss = on_dismiss
        self.form_index: Optional[int] = None
        self.status = PromptStatus.READY
        self.visible = False

    @property
    def save_label(self) -> str:
        return SAVE_LABELS[self.status]

    def show(self, form_index: int) -> None:
        self.form_index = form_index
        self.status = PromptStatus.READY
        self.visible = True
        if self not in self.page.prompts:
            self.page.prompts.append(self)
        logger.debug("Showing save prompt for form %d", form_index)

    def set_status(self, status: PromptStatus) -> None:
        self.status = status

    def click_save(self) -> None:
        if not self.visible or self.status in (PromptStatus.SAVING, PromptStatus.SUCCESS):
            return
        self.on_save(self.form_index)

    def click_dismiss(self) -> None:
        if self.visible:
            self.on_dismiss()

    def click_close(self) -> None:
        self.click_dismiss()

    def close(self) -> None:
        self.visible = False
        if self in self.page.prompts:
            self.page.prompts.remove(self)
