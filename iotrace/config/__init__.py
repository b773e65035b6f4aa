"""Configuration management for iotrace."""

from .schema import (
    IotraceConfig,
    LogConfig,
    OutputConfig,
    load_config,
    generate_default_config,
)

__all__ = [
    'IotraceConfig',
    'LogConfig',
    'OutputConfig',
    'load_config',
    'generate_default_config',
]
