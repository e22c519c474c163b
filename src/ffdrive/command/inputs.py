"""Input option setters.

Each function writes one option to an Input's option group. Single-valued
options replace any earlier value so the last call wins.
"""

from ffdrive.command.models import Input
from ffdrive.command.validation import format_positive
from ffdrive.core.timemark import format_seek_value
from ffdrive.exceptions import ConfigurationError


def set_input_format(input_: Input, fmt: str) -> None:
    """Force the input container format (-f)."""
    if not fmt:
        raise ConfigurationError("Input format must not be empty")
    input_.options.replace("-f", fmt)


def set_input_fps(input_: Input, fps: float) -> None:
    """Override the input frame rate (-r)."""
    input_.options.replace("-r", format_positive(fps, "Input FPS"))


def set_native(input_: Input) -> None:
    """Read the input at its native frame rate (-re)."""
    if input_.options.find("-re") is None:
        input_.options.add("-re")


def set_seek_input(input_: Input, seek: str | float) -> None:
    """Seek the input before decoding (-ss)."""
    input_.options.replace("-ss", format_seek_value(seek))


def set_loop(input_: Input) -> None:
    """Loop the input (-loop 1), typically a still image."""
    input_.options.replace("-loop", "1")

