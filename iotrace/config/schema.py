"""
Configuration schema for iotrace.

Supports:
- YAML file loading
- Environment variable substitution (${VAR_NAME})
- Validation with error messages

Example config (iotrace.yml):
    version: 1

    log:
      byte_order: host
      module_versions:
        LUSTRE: 2
        STDIO: 2

    output:
      show_description: true
      mount_point: /scratch
      fs_type: lustre
"""

import os
import re
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any, Dict

import yaml

from ..formats.module_ids import ModuleId


def _substitute_env_vars(value: Any) -> Any:
    """
    Substitute ${VAR_NAME} with environment variable values.

    Example:
        ${IOTRACE_MOUNT} → os.environ.get('IOTRACE_MOUNT')
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'

        def replace(match):
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                return match.group(0)  # Keep original if not found
            return env_value

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]

    return value


@dataclass
class LogConfig:
    """How raw module regions are interpreted."""
    byte_order: str = 'host'  # host, little or big
    module_versions: Dict[str, int] = field(
        default_factory=lambda: {'LUSTRE': 2, 'STDIO': 2}
    )
    max_record_bytes: Optional[int] = None

    def version_for(self, module_id: int) -> int:
        return int(self.module_versions.get(ModuleId.name(module_id), 0))


@dataclass
class OutputConfig:
    """Printing settings."""
    show_description: bool = True
    file_name: str = ''
    mount_point: str = ''
    fs_type: str = ''


@dataclass
class IotraceConfig:
    """Root configuration."""

    version: int = 1
    log: LogConfig = field(default_factory=LogConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def load(cls, path: Path) -> 'IotraceConfig':
        """Load from YAML file with env var substitution."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        data = _substitute_env_vars(data)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'IotraceConfig':
        """Create from dictionary."""
        log_data = dict(data.get('log', {}))
        if 'module_versions' in log_data:
            versions = LogConfig().module_versions
            versions.update({k.upper(): v for k, v in log_data['module_versions'].items()})
            log_data['module_versions'] = versions
        return cls(
            version=data.get('version', 1),
            log=LogConfig(**log_data),
            output=OutputConfig(**data.get('output', {})),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate config. Returns list of errors (empty if valid)."""
        errors = []

        if self.log.byte_order not in ('host', 'little', 'big'):
            errors.append(f"Invalid byte_order: {self.log.byte_order}")

        for name, ver in self.log.module_versions.items():
            try:
                ModuleId.from_name(name)
            except ValueError:
                errors.append(f"Unknown module in module_versions: {name}")
                continue
            if not isinstance(ver, int) or ver < 1:
                errors.append(f"Invalid version for {name}: {ver}")

        if self.log.max_record_bytes is not None and self.log.max_record_bytes <= 0:
            errors.append(f"Invalid max_record_bytes: {self.log.max_record_bytes}")

        return errors


def load_config(path: Optional[Path] = None) -> IotraceConfig:
    """Load config from file or return defaults."""
    if path and Path(path).exists():
        return IotraceConfig.load(path)

    search_paths = [
        Path('./iotrace.yml'),
        Path('./iotrace.yaml'),
        Path.home() / '.iotrace' / 'config.yml',
    ]

    for p in search_paths:
        if p.exists():
            return IotraceConfig.load(p)

    return IotraceConfig()


def generate_default_config() -> str:
    """Generate default config as YAML."""
    return """# iotrace Configuration
version: 1

log:
  byte_order: host
  module_versions:
    LUSTRE: 2
    STDIO: 2

output:
  show_description: true
  file_name: ""
  mount_point: ""
  fs_type: ""
"""
