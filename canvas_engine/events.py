"""
Input events and the bus that delivers them to an engine.

Events are plain pydantic models so a host can parse them straight from
JSON. Pointer and wheel coordinates are in screen space.

An engine subscribes to an InputBus for its lifetime and unsubscribes on
teardown, so several engines (e.g. in tests) never share listeners.
"""

from enum import Enum
from typing import Callable, Literal, Union
from pydantic import BaseModel


class PointerButton(str, Enum):
    PRIMARY = "primary"
    MIDDLE = "middle"
    SECONDARY = "secondary"


class Modifiers(BaseModel):
    """Modifier keys held during an event."""
    shift: bool = False
    alt: bool = False
    ctrl: bool = False
    meta: bool = False

    @property
    def platform(self) -> bool:
        """Ctrl on Linux/Windows, Cmd on macOS."""
        return self.ctrl or self.meta

    @property
    def duplicate(self) -> bool:
        """Held while pressing a node to drag out a copy."""
        return self.alt


class PointerEvent(Modifiers):
    type: Literal["down", "move", "up"]
    x: float
    y: float
    button: PointerButton = PointerButton.PRIMARY


class WheelEvent(Modifiers):
    type: Literal["wheel"] = "wheel"
    delta_x: float = 0.0
    delta_y: float = 0.0


class KeyEvent(Modifiers):
    type: Literal["key"] = "key"
    key: str
    editing_text: bool = False  # an editable text field has focus


InputEvent = Union[PointerEvent, WheelEvent, KeyEvent]
EventHandler = Callable[[InputEvent], None]


class InputBus:
    """
    Fan-out of input events to subscribed handlers.

    Events are delivered synchronously, one at a time, in subscription order.
    """

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler. Returns a function that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: InputEvent):
        """Deliver an event to every handler."""
        for handler in list(self._handlers):
            handler(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)
