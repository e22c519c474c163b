"""Output size, aspect ratio and padding.

Size settings do not map to a single ffmpeg option. size(), aspect() and
autopad() record their value in the output's SizeData, and the scale/pad
filters are then recomputed from the combined state:

- "50%": scale both dimensions, keeping them even
- "640x480": fixed size; with autopad, scale to fit and pad the rest
- "640x?" / "?x480": compute the missing dimension from aspect() when
  set, otherwise from the input aspect ratio at encode time
"""

from __future__ import annotations

import math
import re

from ffdrive.command.models import Output, SizeData
from ffdrive.core.filters import FilterSpec, make_filter_strings
from ffdrive.exceptions import ConfigurationError

_PERCENT_RE = re.compile(r"^(\d{1,3})%$")
_FIXED_RE = re.compile(r"^(\d+)x(\d+)$")
_FIXED_WIDTH_RE = re.compile(r"^(\d+)x\?$")
_FIXED_HEIGHT_RE = re.compile(r"^\?x(\d+)$")
_RATIO_RE = re.compile(r"^(\d+(?:\.\d+)?):(\d+(?:\.\d+)?)$")

DEFAULT_PAD_COLOR = "black"

# Rescales non-square pixels so the display aspect ratio is kept
KEEP_PIXEL_ASPECT_FILTERS = (
    FilterSpec(
        "scale",
        options={"w": "if(gt(sar,1),iw*sar,iw)", "h": "if(lt(sar,1),ih/sar,ih)"},
    ),
    FilterSpec("setsar", options="1"),
)


def _round(value: float) -> int:
    """Round half up (0.5 -> 1), unlike round()."""
    return int(math.floor(value + 0.5))


def _even(value: float) -> int:
    """Round to the nearest multiple of two, half up."""
    return _round(value / 2) * 2


def _num(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_size(size: str) -> str:
    """Check a size string ("50%", "640x480", "640x?", "?x480").

    Raises:
        ConfigurationError: If the size is malformed or zero.
    """
    text = size.strip() if isinstance(size, str) else ""
    for pattern in (_PERCENT_RE, _FIXED_RE, _FIXED_WIDTH_RE, _FIXED_HEIGHT_RE):
        match = pattern.match(text)
        if match:
            if any(int(group) == 0 for group in match.groups()):
                raise ConfigurationError(f"Invalid size specified: {size!r}")
            return text
    raise ConfigurationError(f"Invalid size specified: {size!r}")


def parse_aspect(aspect: str | float) -> float:
    """Convert "16:9", "1.777" or 1.777 to a positive float.

    Raises:
        ConfigurationError: If the aspect ratio is malformed or not positive.
    """
    if isinstance(aspect, bool):
        raise ConfigurationError(f"Invalid aspect ratio: {aspect!r}")
    if isinstance(aspect, (int, float)):
        ratio = float(aspect)
    else:
        text = str(aspect).strip()
        match = _RATIO_RE.match(text)
        try:
            if match:
                ratio = float(match.group(1)) / float(match.group(2))
            else:
                ratio = float(text)
        except (ValueError, ZeroDivisionError) as e:
            raise ConfigurationError(f"Invalid aspect ratio: {aspect!r}") from e
    if not math.isfinite(ratio) or ratio <= 0:
        raise ConfigurationError(f"Invalid aspect ratio: {aspect!r}")
    return ratio


def scale_pad_filters(
    width: int, height: int, aspect: float, color: str
) -> list[FilterSpec]:
    """Scale to fit inside width x height, then pad to exactly that size."""
    a = _num(aspect)
    return [
        FilterSpec(
            "scale",
            options={
                "w": f"if(gt(a,{a}),{width},trunc({height}*a/2)*2)",
                "h": f"if(lt(a,{a}),{height},trunc({width}/a/2)*2)",
            },
        ),
        FilterSpec(
            "pad",
            options={
                "w": width,
                "h": height,
                "x": f"if(gt(a,{a}),0,({width}-iw)/2)",
                "y": f"if(lt(a,{a}),0,({height}-ih)/2)",
                "color": color,
            },
        ),
    ]


def create_size_filters(data: SizeData) -> list[FilterSpec]:
    """Compute the scale/pad filters for the recorded geometry.

    Returns an empty list while no size has been set.
    """
    if data.size is None:
        return []

    match = _PERCENT_RE.match(data.size)
    if match:
        ratio = _num(int(match.group(1)) / 100)
        return [
            FilterSpec(
                "scale",
                options={"w": f"trunc(iw*{ratio}/2)*2", "h": f"trunc(ih*{ratio}/2)*2"},
            )
        ]

    match = _FIXED_RE.match(data.size)
    if match:
        width = _even(int(match.group(1)))
        height = _even(int(match.group(2)))
        if data.pad_color:
            return scale_pad_filters(width, height, width / height, data.pad_color)
        return [FilterSpec("scale", options={"w": width, "h": height})]

    fixed_width = _FIXED_WIDTH_RE.match(data.size)
    fixed_height = _FIXED_HEIGHT_RE.match(data.size)
    if data.aspect is not None:
        if fixed_width:
            width = int(fixed_width.group(1))
            height = _round(width / data.aspect)
        else:
            assert fixed_height is not None
            height = int(fixed_height.group(1))
            width = _round(height * data.aspect)
        width, height = _even(width), _even(height)
        if data.pad_color:
            return scale_pad_filters(width, height, data.aspect, data.pad_color)
        return [FilterSpec("scale", options={"w": width, "h": height})]

    if fixed_width:
        return [
            FilterSpec(
                "scale",
                options={"w": _even(int(fixed_width.group(1))), "h": "trunc(ow/a/2)*2"},
            )
        ]
    assert fixed_height is not None
    return [
        FilterSpec(
            "scale",
            options={"w": "trunc(oh*a/2)*2", "h": _even(int(fixed_height.group(1)))},
        )
    ]


def _refresh_size_filters(output: Output) -> None:
    output.size_filters.clear()
    filters = create_size_filters(output.size_data)
    if filters:
        output.size_filters.add(make_filter_strings(filters))


def set_size(output: Output, size: str) -> None:
    """Set the output size and recompute size filters."""
    output.size_data.size = validate_size(size)
    _refresh_size_filters(output)


def set_aspect(output: Output, aspect: str | float) -> None:
    """Set the output aspect ratio and recompute size filters."""
    output.size_data.aspect = parse_aspect(aspect)
    _refresh_size_filters(output)


def set_autopad(
    output: Output, pad: bool | str = True, color: str = DEFAULT_PAD_COLOR
) -> None:
    """Enable or disable padding to the requested size.

    A string passed as pad is taken as the pad color.
    """
    if isinstance(pad, str):
        color, pad = pad, True
    if pad and not color:
        raise ConfigurationError("Pad color must not be empty")
    output.size_data.pad_color = color if pad else None
    _refresh_size_filters(output)


def keep_pixel_aspect(output: Output) -> None:
    """Rescale non-square pixels so the display aspect ratio is preserved."""
    output.video_filters.add(make_filter_strings(KEEP_PIXEL_ASPECT_FILTERS))
