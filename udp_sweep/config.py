"""Configuration management for udp-sweep."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from pathlib import Path
import os

from .models.matrix import MAX_PROBES
from .models.probe import (
    DEFAULT_PORT,
    DEFAULT_PACKET_SIZE,
    DEFAULT_TTL,
    DEFAULT_MAX_TIME_US,
    HEADER_SIZE,
)

try:
    import yaml
    YAML_AVAILABLE = True
except ImportError:
    YAML_AVAILABLE = False


@dataclass
class ProbeConfig:
    """Probe configuration."""
    port: int = DEFAULT_PORT  # replies arrive here, probes go to port + 1
    packet_size: int = DEFAULT_PACKET_SIZE
    ttl: int = DEFAULT_TTL
    count: int = 4
    max_time_us: int = DEFAULT_MAX_TIME_US
    bind_address: str = "0.0.0.0"

    @property
    def probe_port(self) -> int:
        return self.port + 1

    @property
    def max_time(self) -> float:
        """Timeout in seconds."""
        return self.max_time_us / 1_000_000


@dataclass
class SweepConfig:
    """Controller timing configuration."""
    poll_interval: float = 0.05  # seconds between completion checks
    receive_timeout: float = 0.1  # socket timeout used to notice shutdown


@dataclass
class ReportConfig:
    """Report configuration."""
    output_dir: str = "./reports"
    formats: List[str] = field(default_factory=lambda: ["text"])  # text, json
    overwrite: bool = False


@dataclass
class AppConfig:
    """Main configuration container."""
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create config from dictionary."""
        config = cls()

        if "probe" in data:
            probe = data["probe"] or {}
            config.probe = ProbeConfig(
                port=probe.get("port", DEFAULT_PORT),
                packet_size=probe.get("packet_size", DEFAULT_PACKET_SIZE),
                ttl=probe.get("ttl", DEFAULT_TTL),
                count=probe.get("count", 4),
                max_time_us=probe.get("max_time_us", DEFAULT_MAX_TIME_US),
                bind_address=probe.get("bind_address", "0.0.0.0"),
            )

        if "sweep" in data:
            sweep = data["sweep"] or {}
            config.sweep = SweepConfig(
                poll_interval=sweep.get("poll_interval", 0.05),
                receive_timeout=sweep.get("receive_timeout", 0.1),
            )

        if "report" in data:
            rep = data["report"] or {}
            config.report = ReportConfig(
                output_dir=rep.get("output_dir", "./reports"),
                formats=rep.get("formats", ["text"]),
                overwrite=rep.get("overwrite", False),
            )

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "AppConfig":
        """Load config from YAML file."""
        if not YAML_AVAILABLE:
            raise ImportError("PyYAML is required for YAML config. Install with: pip install pyyaml")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "AppConfig":
        """Load config from file or use defaults."""
        search_paths = [
            path,
            "udp-sweep.yaml",
            "udp-sweep.yml",
            os.path.expanduser("~/.config/udp-sweep/config.yaml"),
            "/etc/udp-sweep/config.yaml",
        ]

        for config_path in search_paths:
            if config_path and os.path.exists(config_path):
                return cls.from_yaml(config_path)

        return cls()

    def validate(self) -> List[str]:
        """Check value ranges. Returns list of issues, empty if valid."""
        issues = []

        if not 1 <= self.probe.port <= 65534:
            issues.append(f"port must be in 1..65534 (probes use port + 1), got {self.probe.port}")
        if self.probe.packet_size < HEADER_SIZE:
            issues.append(f"packet_size must be at least {HEADER_SIZE}, got {self.probe.packet_size}")
        if not 1 <= self.probe.ttl <= 255:
            issues.append(f"ttl must be in 1..255, got {self.probe.ttl}")
        if not 1 <= self.probe.count <= MAX_PROBES:
            issues.append(f"count must be in 1..{MAX_PROBES}, got {self.probe.count}")
        if self.probe.max_time_us <= 0:
            issues.append(f"max_time_us must be positive, got {self.probe.max_time_us}")
        if self.sweep.poll_interval <= 0:
            issues.append(f"poll_interval must be positive, got {self.sweep.poll_interval}")
        if self.sweep.receive_timeout <= 0:
            issues.append(f"receive_timeout must be positive, got {self.sweep.receive_timeout}")

        unknown = [f for f in self.report.formats if f not in ("text", "json")]
        if unknown:
            issues.append(f"Unknown report format(s): {', '.join(unknown)}")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "probe": {
                "port": self.probe.port,
                "packet_size": self.probe.packet_size,
                "ttl": self.probe.ttl,
                "count": self.probe.count,
                "max_time_us": self.probe.max_time_us,
                "bind_address": self.probe.bind_address,
            },
            "sweep": {
                "poll_interval": self.sweep.poll_interval,
                "receive_timeout": self.sweep.receive_timeout,
            },
            "report": {
                "output_dir": self.report.output_dir,
                "formats": list(self.report.formats),
                "overwrite": self.report.overwrite,
            },
        }

    def save_yaml(self, path: str) -> None:
        """Save config to YAML file."""
        if not YAML_AVAILABLE:
            raise ImportError("PyYAML is required for YAML config")

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)
