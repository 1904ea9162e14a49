"""Theme colors and key styling for the UI."""


class GameColors:
    """Light teal palette shared by the keyboard, viewer and overlays."""

    BG_TOP = "#e0f7fa"
    BG_MIDDLE = "#b2ebf2"
    BG_BOTTOM = "#80deea"

    PRIMARY = "#00838f"
    PRIMARY_LIGHT = "#4fb3bf"
    PRIMARY_DARK = "#005662"

    CORAL = "#ff8a65"
    AMBER = "#ffb74d"

    TEXT_PRIMARY = "#1a3a3a"
    TEXT_MUTED = "#78909c"

    KEY_BG = "#ffffff"
    KEY_FUNCTIONAL_BG = "#d7eef1"
    KEY_BORDER = "#b0bec5"

    INPUT_BG = "#f8fcfd"

    # Flick guide
    GUIDE_BG = "#4a6572"
    GUIDE_HIGHLIGHT = "#00838f"

    CORRECT = "#2e7d32"
    INCORRECT = "#c62828"


def blend_hex(a: str, b: str, t: float) -> str:
    """Blend two #RRGGBB colors. t=0 -> a, t=1 -> b."""
    try:
        a = a.strip()
        b = b.strip()
        if not (a.startswith("#") and b.startswith("#") and len(a) == 7 and len(b) == 7):
            return a
        t = max(0.0, min(1.0, float(t)))
        ar, ag, ab = int(a[1:3], 16), int(a[3:5], 16), int(a[5:7], 16)
        br, bg, bb = int(b[1:3], 16), int(b[3:5], 16), int(b[5:7], 16)
        r = int(ar + (br - ar) * t)
        g = int(ag + (bg - ag) * t)
        bl = int(ab + (bb - ab) * t)
        return f"#{r:02X}{g:02X}{bl:02X}"
    except Exception:
        return a


def key_style(functional: bool = False, moved: bool = False, dragging: bool = False, font_px: int = 22) -> str:
    """Stylesheet for a key label.

    Moved keys keep their slot on the keyboard but fade towards the
    background; a key being dragged is dimmed further.
    """
    background = GameColors.KEY_FUNCTIONAL_BG if functional else GameColors.KEY_BG
    text = GameColors.TEXT_PRIMARY
    border = GameColors.KEY_BORDER
    if moved:
        background = blend_hex(background, GameColors.BG_MIDDLE, 0.6)
        text = GameColors.TEXT_MUTED
        border = GameColors.BG_BOTTOM
    if dragging:
        background = blend_hex(background, GameColors.BG_BOTTOM, 0.5)
        border = GameColors.PRIMARY
    weight = 600 if functional else 700
    size = max(10, int(font_px * 0.7)) if functional else font_px
    return (
        "QLabel {"
        f" background: {background};"
        f" color: {text};"
        f" border: 2px solid {border};"
        " border-radius: 10px;"
        f" font-size: {size}px;"
        f" font-weight: {weight};"
        " }"
    )
