"""Theme palettes and color utilities for the UI."""

from typepractice.core.settings import Theme


class LightColors:
    BG = "#eef6f7"
    SURFACE = "#ffffff"
    FIELD_BG = "#c8e6c9"

    PRIMARY = "#00838f"
    PRIMARY_LIGHT = "#4fb3bf"
    PRIMARY_DARK = "#005662"

    TEXT_PRIMARY = "#1a3a3a"
    TEXT_MUTED = "#78909c"

    CORRECT = "#2e7d32"
    WRONG = "#c62828"
    PENDING = "#90a4ae"

    MOLE_BG = "#ffeb3b"
    MOLE_BORDER = "#000000"

    CARD_BG = "rgba(255, 255, 255, 0.85)"


class DarkColors:
    BG = "#1e2428"
    SURFACE = "#2a3137"
    FIELD_BG = "#33403a"

    PRIMARY = "#4fb3bf"
    PRIMARY_LIGHT = "#80deea"
    PRIMARY_DARK = "#00838f"

    TEXT_PRIMARY = "#e6eef0"
    TEXT_MUTED = "#90a4ae"

    CORRECT = "#81c784"
    WRONG = "#ef9a9a"
    PENDING = "#607d8b"

    MOLE_BG = "#fbc02d"
    MOLE_BORDER = "#e6eef0"

    CARD_BG = "rgba(42, 49, 55, 0.9)"


def palette_for(theme: Theme):
    return DarkColors if theme is Theme.DARK else LightColors


def blend_hex(a: str, b: str, t: float) -> str:
    """Blend two #RRGGBB colors. t=0 -> a, t=1 -> b."""
    try:
        a = a.strip()
        b = b.strip()
        if not (a.startswith("#") and b.startswith("#") and len(a) == 7 and len(b) == 7):
            return a
        t = max(0.0, min(1.0, float(t)))
        channels = []
        for i in (1, 3, 5):
            start = int(a[i:i + 2], 16)
            end = int(b[i:i + 2], 16)
            channels.append(int(start + (end - start) * t))
        return "#{:02X}{:02X}{:02X}".format(*channels)
    except ValueError:
        return a
