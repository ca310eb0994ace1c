"""
Tests for the save prompt state machine.

Timers run on a ManualScheduler so every transition is driven explicitly.
"""

import sys
import asyncio
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent))

from formmemory.config import TrackerConfig
from formmemory.domain.exceptions import StorageWriteError
from formmemory.domain.models import PromptStatus, SaveOfferStatus, TrackerState
from formmemory.domain.page import DomEvent, FieldElement, FormElement, Page
from formmemory.services.controller import FormMemoryController
from formmemory.services.messaging import MessageHandler, StorageClient
from formmemory.services.storage import StorageBackend
from formmemory.utils.scheduler import ManualScheduler

URL = "https://example.com/contact"


def build_page():
    login = FormElement(element_id="login", fields=[
        FieldElement(name="username"),
        FieldElement(type="password", name="password"),
    ])
    contact = FormElement(element_id="contact", fields=[
        FieldElement(name="name"),
        FieldElement(type="email", name="email"),
        FieldElement(type="textarea", name="message"),
    ])
    return Page(URL, [login, contact])


# ============ Fixtures ============

@pytest.fixture
def backend():
    return StorageBackend.in_memory()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def controller(backend, scheduler):
    controller = FormMemoryController(
        build_page(),
        StorageClient(MessageHandler(backend)),
        scheduler=scheduler,
        tracker_config=TrackerConfig(),
    )
    asyncio.run(controller.start())
    return controller


@pytest.fixture
def tracker(controller):
    return controller.tracker


def login_field(controller, index=0):
    return controller.page.forms[0].fields[index]


def contact_field(controller, index=0):
    return controller.page.forms[1].fields[index]


# ============ Dirty / Debounce Tests ============

class TestDebounce:

    def test_input_marks_dirty(self, controller, tracker):
        contact_field(controller).type_text("Bob")
        assert tracker.state == TrackerState.DIRTY
        assert tracker.dirty_form_index == 1

    def test_prompt_after_two_seconds(self, controller, tracker, scheduler):
        contact_field(controller).type_text("Bob")

        scheduler.advance(1.5)
        assert controller.page.prompts == []

        scheduler.advance(0.5)
        assert tracker.state == TrackerState.OFFERED
        assert len(controller.page.prompts) == 1
        assert tracker.offer.status == SaveOfferStatus.SHOWN
        assert tracker.offer.form_index == 1

    def test_timed_from_last_event(self, controller, tracker, scheduler):
        tracker._on_debounce = MagicMock(wraps=tracker._on_debounce)
        for i in range(5):
            contact_field(controller).type_text("B" * (i + 1))
            scheduler.advance(0.5)

        scheduler.advance(1.0)
        assert tracker._on_debounce.call_count == 0

        scheduler.advance(0.5)
        assert tracker._on_debounce.call_count == 1
        assert len(controller.page.prompts) == 1

    def test_untrusted_events_ignored(self, controller, tracker):
        element = contact_field(controller)
        element.dispatch(DomEvent("input", element, is_trusted=False))
        assert tracker.state == TrackerState.IDLE

    def test_input_ignored_while_offered(self, controller, tracker, scheduler):
        contact_field(controller).type_text("Bob")
        scheduler.advance(2)

        contact_field(controller, 1).type_text("bob@example.com")

        assert tracker.state == TrackerState.OFFERED
        assert scheduler.pending() == 1  # only the auto-hide timer


class TestAuthenticationGate:

    def test_login_form_stays_dirty(self, controller, tracker, scheduler):
        login_field(controller).type_text("bob")
        scheduler.advance(5)

        assert tracker.state == TrackerState.DIRTY
        assert controller.page.prompts == []

    def test_login_submit_stays_dirty(self, controller, tracker, scheduler):
        login_field(controller).type_text("bob")
        controller.page.forms[0].submit()

        assert tracker.state == TrackerState.DIRTY
        assert controller.page.prompts == []
        assert scheduler.pending() == 0


# ============ Submit Tests ============

class TestSubmit:

    def test_submit_while_dirty_offers_immediately(self, controller, tracker, scheduler):
        contact_field(controller).type_text("Bob")
        controller.page.forms[1].submit()

        assert tracker.state == TrackerState.OFFERED
        scheduler.advance(2)
        assert len(controller.page.prompts) == 1

    def test_submit_while_idle_is_noop(self, controller, tracker):
        controller.page.forms[1].submit()
        assert tracker.state == TrackerState.IDLE
        assert controller.page.prompts == []

    def test_submit_while_offered_is_noop(self, controller, tracker, scheduler):
        contact_field(controller).type_text("Bob")
        scheduler.advance(2)
        prompt = tracker.offer.prompt

        controller.page.forms[1].submit()

        assert tracker.offer.prompt is prompt
        assert len(controller.page.prompts) == 1


# ============ Resolution Tests ============

class TestResolution:

    @pytest.fixture
    def offered(self, controller, tracker, scheduler):
        contact_field(controller).type_text("Bob")
        scheduler.advance(2)
        return tracker.offer

    def test_dismiss(self, controller, tracker, offered):
        offered.prompt.click_dismiss()

        assert tracker.state == TrackerState.IDLE
        assert tracker.offer is None
        assert offered.status == SaveOfferStatus.NONE
        assert controller.page.prompts == []

    def test_close_button(self, controller, tracker, offered):
        offered.prompt.click_close()
        assert tracker.state == TrackerState.IDLE

    def test_auto_hide(self, controller, tracker, scheduler, offered):
        scheduler.advance(9.5)
        assert tracker.state == TrackerState.OFFERED
        scheduler.advance(0.5)
        assert tracker.state == TrackerState.IDLE
        assert controller.page.prompts == []

    def test_new_cycle_after_dismiss(self, controller, tracker, scheduler, offered):
        offered.prompt.click_dismiss()
        contact_field(controller).type_text("Bobby")
        assert tracker.state == TrackerState.DIRTY
        scheduler.advance(2)
        assert tracker.state == TrackerState.OFFERED

    def test_second_offer_is_dropped(self, controller, tracker, offered):
        tracker._offer(1)
        assert tracker.offer is offered
        assert len(controller.page.prompts) == 1


# ============ Save Tests ============

class TestSave:

    def test_successful_save(self, controller, tracker, scheduler, backend):
        async def scenario():
            contact_field(controller).type_text("Bob")
            scheduler.advance(2)
            prompt = tracker.offer.prompt
            prompt.click_save()
            await tracker.drain()
            return prompt

        prompt = asyncio.run(scenario())

        assert prompt.status == PromptStatus.SUCCESS
        assert tracker.state == TrackerState.OFFERED
        assert backend.get(f"{URL}_form_1").fields == {"name": "Bob"}
        assert backend.get(f"{URL}_form_0") is None

        scheduler.advance(1)
        assert tracker.state == TrackerState.IDLE
        assert controller.page.prompts == []

    def test_failed_save_keeps_prompt(self, controller, tracker, scheduler):
        controller.persistence.save = AsyncMock(side_effect=StorageWriteError("both tiers failed"))
        contact_field(controller).type_text("Bob")
        scheduler.advance(2)
        prompt = tracker.offer.prompt

        assert asyncio.run(tracker.save_offer()) is False
        assert prompt.status == PromptStatus.ERROR
        assert tracker.state == TrackerState.OFFERED

        scheduler.advance(2)
        assert prompt.status == PromptStatus.READY
        assert tracker.state == TrackerState.OFFERED

        scheduler.advance(10)
        assert tracker.state == TrackerState.IDLE

    def test_late_response_after_dismiss(self, controller, tracker, scheduler, backend):
        release = None
        real_save = controller.persistence.save

        async def slow_save(form, key):
            await release.wait()
            return await real_save(form, key)

        controller.persistence.save = slow_save

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            contact_field(controller).type_text("Bob")
            scheduler.advance(2)
            prompt = tracker.offer.prompt
            prompt.click_save()
            await asyncio.sleep(0)
            tracker.dismiss()
            release.set()
            await tracker.drain()
            return prompt

        prompt = asyncio.run(scenario())

        assert tracker.state == TrackerState.IDLE
        assert prompt.status == PromptStatus.SAVING
        assert controller.page.prompts == []
        assert backend.get(f"{URL}_form_1").fields == {"name": "Bob"}

    def test_save_without_offer(self, tracker):
        assert asyncio.run(tracker.save_offer()) is False


# ============ Controller Tests ============

class TestController:

    def test_restores_on_start_without_offering(self, backend, scheduler):
        client = StorageClient(MessageHandler(backend))
        first = FormMemoryController(build_page(), client, scheduler=scheduler)
        asyncio.run(first.start())
        first.page.forms[1].fields[0].value = "Bob"
        asyncio.run(first.persistence.save(first.page.forms[1], f"{URL}_form_1"))

        second = FormMemoryController(build_page(), client, scheduler=scheduler)
        asyncio.run(second.start())

        assert second.page.forms[1].fields[0].value == "Bob"
        assert second.tracker.state == TrackerState.IDLE
        scheduler.advance(5)
        assert second.page.prompts == []

    def test_new_forms_are_tracked(self, controller, tracker, scheduler):
        extra = FormElement(element_id="feedback", fields=[FieldElement(name="comment")])
        controller.page.add_form(extra)

        assert len(controller.forms) == 3
        extra.fields[0].type_text("great")
        assert tracker.dirty_form_index == 2

    def test_reattach_does_not_duplicate_listeners(self, controller):
        controller.page.add_form(FormElement(fields=[FieldElement(name="comment")]))
        element = contact_field(controller)
        assert element.listener_count("input") == 1
        assert controller.page.forms[1].listener_count("submit") == 1

    def test_shrinking_form_set_is_ignored(self, controller):
        controller.on_forms_changed(controller.page.forms[:1])
        assert len(controller.forms) == 2
