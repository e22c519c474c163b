"""Tests for the public package surface."""

import ffdrive


def test_version_is_set() -> None:
    assert ffdrive.__version__ == "0.1.0"


def test_exports_command_builder() -> None:
    assert ffdrive.FfmpegCommand.__name__ == "FfmpegCommand"


def test_all_exceptions_share_a_base() -> None:
    for name in (
        "CapabilityError",
        "ConfigurationError",
        "PresetError",
        "ProcessError",
        "ProcessTimeoutError",
        "RunCancelledError",
        "SpawnError",
        "StreamError",
        "TimemarkError",
    ):
        assert issubclass(getattr(ffdrive, name), ffdrive.FfdriveError)


def test_configuration_error_is_value_error() -> None:
    assert issubclass(ffdrive.ConfigurationError, ValueError)
