from __future__ import annotations

import logging
from typing import Callable, List, Optional

from nazokey.core.geometry import Direction
from nazokey.core.kana import (
    KEY_DELETE,
    KEY_HELP,
    KEY_HINT,
    KEY_SUBMIT,
    KEY_VOICING,
    FlickKeyboardLayout,
)

logger = logging.getLogger(__name__)

TextListener = Callable[[str], None]


class TextComposer:
    """Turns resolved flick keystrokes into answer text and side effects.

    Character keys append the character for the flick direction. Functional
    keys edit the text (delete, voicing toggle) or fire the outbound
    notifications ``on_submit``, ``on_hint`` and ``on_help``.
    """

    def __init__(
        self,
        on_submit: Optional[Callable[[], None]] = None,
        on_hint: Optional[Callable[[], None]] = None,
        on_help: Optional[Callable[[], None]] = None,
    ) -> None:
        self._text = ""
        self._on_submit = on_submit
        self._on_hint = on_hint
        self._on_help = on_help
        self._listeners: List[TextListener] = []

    @property
    def text(self) -> str:
        """Current answer text."""
        return self._text

    def subscribe(self, listener: TextListener) -> Callable[[], None]:
        """Call ``listener`` with the new text after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def compose(self, key: str, direction: Direction) -> None:
        """Apply one resolved keystroke."""
        logger.info("Input: key=%r direction=%s", key, direction.value)
        if key == KEY_DELETE:
            self.delete_last()
        elif key == KEY_SUBMIT:
            self._fire(self._on_submit)
        elif key == KEY_HELP:
            self._fire(self._on_help)
        elif key == KEY_HINT:
            self._fire(self._on_hint)
        elif key == KEY_VOICING:
            self.apply_voicing()
        else:
            char = FlickKeyboardLayout.flick_char(key, direction)
            if char:
                self._set_text(self._text + char)

    def delete_last(self) -> None:
        self._set_text(self._text[:-1])

    def apply_voicing(self) -> None:
        """Cycle the trailing character through unvoiced / voiced / semi-voiced."""
        if not self._text:
            return
        last = self._text[-1]
        converted = FlickKeyboardLayout.toggle_voicing(last)
        logger.debug("Voicing: %r -> %r", last, converted)
        self._set_text(self._text[:-1] + converted)

    def clear(self) -> None:
        self._set_text("")

    def _set_text(self, text: str) -> None:
        self._text = text
        for listener in list(self._listeners):
            listener(text)

    @staticmethod
    def _fire(callback: Optional[Callable[[], None]]) -> None:
        if callback is not None:
            callback()
