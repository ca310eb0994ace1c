"""Headless page model standing in for the browser DOM."""
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from formmemory.domain.models import PageLocation

TEXT_LIKE_TYPES = {
    "text", "email", "tel", "url", "search", "number", "date", "datetime-local",
    "month", "week", "time", "color", "range", "textarea", "select",
}

BUTTON_TYPES = {"submit", "button", "reset", "image"}

Listener = Callable[["DomEvent"], None]


@dataclass
class DomEvent:
    """An input, change or submit notification."""
    type: str
    target: Any
    is_trusted: bool = True


class _EventTarget:
    """Listener bookkeeping shared by fields and forms."""

    def add_listener(self, event_type: str, callback: Listener) -> None:
        """Register a listener; an identical one already registered is ignored."""
        registered = self.listeners.setdefault(event_type, [])
        if callback not in registered:
            registered.append(callback)

    def remove_listener(self, event_type: str, callback: Listener) -> None:
        registered = self.listeners.get(event_type, [])
        if callback in registered:
            registered.remove(callback)

    def listener_count(self, event_type: str) -> int:
        return len(self.listeners.get(event_type, []))

    def dispatch(self, event: DomEvent) -> None:
        for callback in list(self.listeners.get(event.type, [])):
            callback(event)


@dataclass(eq=False)
class FieldElement(_EventTarget):
    """A single input, textarea or select element."""
    type: str = "text"
    name: str = ""
    element_id: str = ""
    value: str = ""
    checked: bool = False
    placeholder: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    form: Optional["FormElement"] = field(default=None, repr=False)
    listeners: Dict[str, List[Listener]] = field(default_factory=dict, repr=False)
    _fallback_name: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        self.type = (self.type or "text").lower()

    @property
    def is_checkbox(self) -> bool:
        return self.type == "checkbox"

    @property
    def is_radio(self) -> bool:
        return self.type == "radio"

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_button(self) -> bool:
        return self.type in BUTTON_TYPES

    @property
    def is_text_like(self) -> bool:
        return self.type in TEXT_LIKE_TYPES or self.type in ("hidden", "password")

    def resolved_name(self) -> str:
        """Declared name, else element id, else a generated fallback."""
        if self.name:
            return self.name
        if self.element_id:
            return self.element_id
        if self._fallback_name is None:
            self._fallback_name = f"field_{uuid.uuid4().hex[:9]}"
        return self._fallback_name

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def set_value(self, value: str, notify: bool = False) -> None:
        self.value = value
        if notify:
            self.dispatch(DomEvent("input", self))

    def set_checked(self, checked: bool, notify: bool = False) -> None:
        self.checked = checked
        if notify:
            self.dispatch(DomEvent("change", self))

    def type_text(self, value: str) -> None:
        """Simulate the user typing a value."""
        self.value = value
        self.dispatch(DomEvent("input", self))
        self.dispatch(DomEvent("change", self))

    def click(self) -> None:
        """Simulate the user clicking a checkbox or radio button."""
        if self.is_radio:
            if self.form is not None:
                for other in self.form.radio_group(self.resolved_name()):
                    other.checked = False
            self.checked = True
        elif self.is_checkbox:
            self.checked = not self.checked
        self.dispatch(DomEvent("input", self))
        self.dispatch(DomEvent("change", self))


@dataclass(eq=False)
class FormElement(_EventTarget):
    """A form and the fields it owns."""
    element_id: str = ""
    class_name: str = ""
    name: str = ""
    action: str = ""
    fields: List[FieldElement] = field(default_factory=list)
    button_labels: List[str] = field(default_factory=list)
    container_text: str = ""
    listeners: Dict[str, List[Listener]] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        for element in self.fields:
            element.form = self

    def add_field(self, element: FieldElement) -> FieldElement:
        element.form = self
        self.fields.append(element)
        return element

    def inputs(self) -> Iterator[FieldElement]:
        """Fields that carry values; file inputs and buttons are never considered."""
        return (element for element in self.fields if not (element.is_file or element.is_button))

    def radio_group(self, name: str) -> List[FieldElement]:
        return [element for element in self.inputs() if element.is_radio and element.resolved_name() == name]

    def submit(self) -> None:
        self.dispatch(DomEvent("submit", self))


class Page:
    """A loaded document: its address, its forms and any visible prompts."""

    def __init__(self, href: str, forms: Optional[List[FormElement]] = None):
        self.location = PageLocation(href)
        self.forms: List[FormElement] = list(forms or [])
        self.prompts: List[Any] = []
        self._observers: List[Callable[[List[FormElement]], None]] = []

    @property
    def href(self) -> str:
        return self.location.href

    def observe(self, callback: Callable[[List[FormElement]], None]) -> None:
        if callback not in self._observers:
            self._observers.append(callback)

    def add_form(self, form: FormElement) -> FormElement:
        """Append a form and notify mutation observers."""
        self.forms.append(form)
        for callback in list(self._observers):
            callback(list(self.forms))
        return form


def _build_field(data: Dict[str, Any]) -> FieldElement:
    return FieldElement(
        type=data.get("type", "text"),
        name=data.get("name", ""),
        element_id=data.get("id", ""),
        value=str(data.get("value", "")),
        checked=bool(data.get("checked", False)),
        placeholder=data.get("placeholder", ""),
        attributes=dict(data.get("attributes") or {}),
    )


def build_form(data: Dict[str, Any]) -> FormElement:
    """Build a form from its JSON description."""
    return FormElement(
        element_id=data.get("id", ""),
        class_name=data.get("class", ""),
        name=data.get("name", ""),
        action=data.get("action", ""),
        fields=[_build_field(item) for item in data.get("fields", [])],
        button_labels=list(data.get("buttons", [])),
        container_text=data.get("container_text", ""),
    )


def load_page(data: Dict[str, Any]) -> Page:
    """Build a page from a JSON description: {"url": ..., "forms": [...]}."""
    if "url" not in data:
        raise ValueError("page description needs a 'url'")
    return Page(data["url"], [build_form(item) for item in data.get("forms", [])])
