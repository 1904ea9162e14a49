"""Flick keyboard layout, composition table and the voicing (dakuten) cycle."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from nazokey.core.geometry import Direction

# Key identities that trigger side effects instead of inserting a character.
KEY_HELP = "説明"
KEY_HINT = "ヒント"
KEY_DELETE = "削除"
KEY_SUBMIT = "確定"
KEY_VOICING = "゛"

# The text-input field can be dragged like any key.
INPUT_FIELD = "入力欄"

FUNCTIONAL_KEYS = frozenset({KEY_DELETE, KEY_SUBMIT, KEY_HELP, KEY_HINT, KEY_VOICING})


class FlickKeyboardLayout:
    """
    Japanese kana flick layout.

    Each character key holds up to five characters indexed by flick
    direction in the order ``center, left, up, right, down``. ``None`` marks
    a direction with no character.
    """

    FLICK_MAP: Dict[str, Tuple[Optional[str], ...]] = {
        'あ': ('あ', 'い', 'う', 'え', 'お'),
        'か': ('か', 'き', 'く', 'け', 'こ'),
        'さ': ('さ', 'し', 'す', 'せ', 'そ'),
        'た': ('た', 'ち', 'つ', 'て', 'と'),
        'な': ('な', 'に', 'ぬ', 'ね', 'の'),
        'は': ('は', 'ひ', 'ふ', 'へ', 'ほ'),
        'ま': ('ま', 'み', 'む', 'め', 'も'),
        'や': ('や', '（', 'ゆ', '）', 'よ'),
        'ら': ('ら', 'り', 'る', 'れ', 'ろ'),
        'わ': ('わ', 'を', 'ん', 'ー', None),
    }

    # Grid rows; an empty string is a spacer cell.
    ROWS: Tuple[Tuple[str, ...], ...] = (
        (KEY_HELP, 'あ', 'か', 'さ', KEY_DELETE),
        (KEY_HINT, 'た', 'な', 'は', ''),
        ('', 'ま', 'や', 'ら', ''),
        ('', KEY_VOICING, 'わ', KEY_SUBMIT, ''),
    )

    FLICK_INDEX: Dict[Direction, int] = {
        Direction.CENTER: 0,
        Direction.LEFT: 1,
        Direction.UP: 2,
        Direction.RIGHT: 3,
        Direction.DOWN: 4,
    }

    # Cross-shaped guide, read top to bottom, left to right.
    GUIDE_ORDER: Tuple[Direction, ...] = (
        Direction.UP,
        Direction.LEFT,
        Direction.CENTER,
        Direction.RIGHT,
        Direction.DOWN,
    )

    # unvoiced -> voiced -> (semi-voiced, ha-row only) -> unvoiced
    VOICING_CYCLE: Dict[str, str] = {
        'か': 'が', 'き': 'ぎ', 'く': 'ぐ', 'け': 'げ', 'こ': 'ご',
        'さ': 'ざ', 'し': 'じ', 'す': 'ず', 'せ': 'ぜ', 'そ': 'ぞ',
        'た': 'だ', 'ち': 'ぢ', 'つ': 'づ', 'て': 'で', 'と': 'ど',
        'は': 'ば', 'ひ': 'び', 'ふ': 'ぶ', 'へ': 'べ', 'ほ': 'ぼ',

        'が': 'か', 'ぎ': 'き', 'ぐ': 'く', 'げ': 'け', 'ご': 'こ',
        'ざ': 'さ', 'じ': 'し', 'ず': 'す', 'ぜ': 'せ', 'ぞ': 'そ',
        'だ': 'た', 'ぢ': 'ち', 'づ': 'つ', 'で': 'て', 'ど': 'と',
        'ば': 'ぱ', 'び': 'ぴ', 'ぶ': 'ぷ', 'べ': 'ぺ', 'ぼ': 'ぽ',

        'ぱ': 'は', 'ぴ': 'ひ', 'ぷ': 'ふ', 'ぺ': 'へ', 'ぽ': 'ほ',
    }

    @classmethod
    def flick_char(cls, key: str, direction: Direction) -> Optional[str]:
        chars = cls.FLICK_MAP.get(key)
        if not chars:
            return None
        return chars[cls.FLICK_INDEX[direction]]

    @classmethod
    def guide_chars(cls, key: str) -> Optional[List[Optional[str]]]:
        """Characters for the flick guide in ``GUIDE_ORDER``, or None for keys without a flick set."""
        if key not in cls.FLICK_MAP:
            return None
        return [cls.flick_char(key, direction) for direction in cls.GUIDE_ORDER]

    @staticmethod
    def is_functional(key: str) -> bool:
        return key in FUNCTIONAL_KEYS

    @classmethod
    def toggle_voicing(cls, char: str) -> str:
        """Advance ``char`` one step through the voicing cycle; other characters are returned unchanged."""
        return cls.VOICING_CYCLE.get(char, char)
