"""Content label keys, presets, and display helpers."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from slugify import slugify

DEFAULT_INTENSITY = 5
MIN_INTENSITY = 0
MAX_INTENSITY = 10


@dataclass(frozen=True)
class FilterPreset:
    label_key: str
    label: str
    default_intensity: int


DEFAULT_FILTERS: tuple[FilterPreset, ...] = (
    FilterPreset("language", "Language", 5),
    FilterPreset("mature_themes", "Mature Themes", 5),
    FilterPreset("scary", "Scary", 5),
    FilterPreset("sex_nudity", "Sex & Nudity", 4),
    FilterPreset("substance", "Substance", 4),
    FilterPreset("violence", "Violence", 5),
)
PRESETS_BY_KEY = {preset.label_key: preset for preset in DEFAULT_FILTERS}

_SPLIT_RE = re.compile(r"[_\-]+")
_INPUT_SPLIT_RE = re.compile(r"[\n,]+")
_WHITESPACE_RE = re.compile(r"\s+")
_LABEL_KEY_DISALLOWED_RE = re.compile(r"[^a-z0-9]+")


def normalize_label_key(value: str | None) -> str:
    """Lowercase a label and collapse non-alphanumeric runs into single underscores.

    Characters outside a-z and 0-9 are separators: nothing is transliterated and
    HTML entities are kept as typed.
    """
    if not value:
        return ""
    return slugify(_LABEL_KEY_DISALLOWED_RE.sub(" ", value.strip().lower()), separator="_")


def clean_label(value: str) -> str:
    """Trim a user-entered label and collapse inner whitespace."""
    return _WHITESPACE_RE.sub(" ", value.strip())


def format_filter_label(label_key: str) -> str:
    """Return the preset display name or a title-cased rendering of the key."""
    preset = PRESETS_BY_KEY.get(label_key)
    if preset:
        return preset.label
    return " ".join(segment[:1].upper() + segment[1:] for segment in _SPLIT_RE.split(label_key) if segment)


def default_intensity_for(label_key: str) -> int:
    preset = PRESETS_BY_KEY.get(label_key.lower())
    return preset.default_intensity if preset else DEFAULT_INTENSITY


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_intensity(value: float | int | None, *, minimum: int = 1) -> int:
    """Round to the nearest whole step and clamp into [minimum, 10]; non-finite input gets the default."""
    if value is None or isinstance(value, bool):
        return DEFAULT_INTENSITY
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_INTENSITY
    if not math.isfinite(number):
        return DEFAULT_INTENSITY
    return min(MAX_INTENSITY, max(minimum, round_half_up(number)))


def parse_label_input(raw: str) -> list[str]:
    """Split comma or newline separated label input into trimmed entries."""
    return [entry.strip() for entry in _INPUT_SPLIT_RE.split(raw or "") if entry.strip()]
