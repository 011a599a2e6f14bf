"""
Configuration loading for resourcegraph deployments.

Example resourcegraph.yaml:

    metadata_path: resources.yaml
    engine_url: http://employees:8002
    federation: true
    entrypoints: [EmployeeResource, PositionResource]
    max_depth: 10
    port: 8000
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_PATH = "resourcegraph.yaml"


@dataclass
class ResourceGraphConfig:
    """Settings for schema generation, execution and serving."""
    metadata_path: str = "resources.yaml"
    engine_url: Optional[str] = None
    engine_timeout: float = 30.0
    schema_reloading: bool = False
    federation: bool = False
    entrypoints: Optional[list[str]] = None
    max_depth: Optional[int] = None
    fanout_page_size: int = 999
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceGraphConfig":
        """Create config from dictionary; unknown keys are kept in extra."""
        known = {f.name for f in fields(cls)} - {"extra"}
        config = cls(**{key: value for key, value in data.items() if key in known})
        config.extra = {key: value for key, value in data.items() if key not in known}
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        data = {
            "metadata_path": self.metadata_path,
            "engine_url": self.engine_url,
            "engine_timeout": self.engine_timeout,
            "schema_reloading": self.schema_reloading,
            "federation": self.federation,
            "entrypoints": self.entrypoints,
            "max_depth": self.max_depth,
            "fanout_page_size": self.fanout_page_size,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
        }
        data.update(self.extra)
        return data

    def save(self, path: Path | str = DEFAULT_CONFIG_PATH) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(content)


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> ResourceGraphConfig | None:
    """Load configuration from YAML file."""
    path = Path(path)
    if not path.exists():
        return None

    data = yaml.safe_load(path.read_text()) or {}
    return ResourceGraphConfig.from_dict(data)
