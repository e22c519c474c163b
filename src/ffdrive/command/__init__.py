"""ffmpeg command building.

FfmpegCommand collects inputs, outputs and their options, renders them
into an ffmpeg argument list and runs it through the executor.
"""

from ffdrive.command.builder import CommandOptions, FfmpegCommand
from ffdrive.command.models import INPUT_PIPE, OUTPUT_PIPE, Input, Output, SizeData
from ffdrive.command.presets import (
    BUILTIN_PRESETS,
    PresetModel,
    load_preset_file,
    resolve_preset,
)
from ffdrive.command.videosize import create_size_filters

__all__ = [
    "BUILTIN_PRESETS",
    "INPUT_PIPE",
    "OUTPUT_PIPE",
    "CommandOptions",
    "FfmpegCommand",
    "Input",
    "Output",
    "PresetModel",
    "SizeData",
    "create_size_filters",
    "load_preset_file",
    "resolve_preset",
]
