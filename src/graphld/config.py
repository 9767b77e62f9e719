"""
Configuration for GraphLD.

Provides:
- Expansion limits (depth bound, fan-out concurrency)
- Graph endpoint settings
- JSON-LD context loading settings
- Configuration validation
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from graphld.errors import ConfigValidationError

logger = logging.getLogger(__name__)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ExpansionConfig:
    """Settings for recursive document reconstruction."""
    deep: bool = True
    max_depth: int = 64
    max_concurrency: int = 16

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deep": self.deep,
            "max_depth": self.max_depth,
            "max_concurrency": self.max_concurrency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExpansionConfig":
        return cls(
            deep=data.get("deep", True),
            max_depth=data.get("max_depth", 64),
            max_concurrency=data.get("max_concurrency", 16),
        )


@dataclass
class EndpointConfig:
    """Connection settings for a remote graph engine."""
    url: Optional[str] = None
    timeout_seconds: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timeout_seconds": self.timeout_seconds,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EndpointConfig":
        return cls(
            url=data.get("url"),
            timeout_seconds=data.get("timeout_seconds", 30.0),
            headers=data.get("headers", {}),
        )


@dataclass
class ContextConfig:
    """
    JSON-LD context loading settings.

    ``inline_contexts`` maps short context references (e.g. ``"person"``)
    or full URLs to context documents so they resolve without a network call.
    """
    cache_contexts: bool = True
    loader_timeout_seconds: float = 10.0
    inline_contexts: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache_contexts": self.cache_contexts,
            "loader_timeout_seconds": self.loader_timeout_seconds,
            "inline_contexts": dict(self.inline_contexts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextConfig":
        return cls(
            cache_contexts=data.get("cache_contexts", True),
            loader_timeout_seconds=data.get("loader_timeout_seconds", 10.0),
            inline_contexts=data.get("inline_contexts", {}),
        )


@dataclass
class GraphLDConfig:
    """Complete configuration for a GraphLD model."""
    expansion: ExpansionConfig = field(default_factory=ExpansionConfig)
    endpoint: EndpointConfig = field(default_factory=EndpointConfig)
    context: ContextConfig = field(default_factory=ContextConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expansion": self.expansion.to_dict(),
            "endpoint": self.endpoint.to_dict(),
            "context": self.context.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphLDConfig":
        return cls(
            expansion=ExpansionConfig.from_dict(data.get("expansion", {})),
            endpoint=EndpointConfig.from_dict(data.get("endpoint", {})),
            context=ContextConfig.from_dict(data.get("context", {})),
        )

    @classmethod
    def from_env(cls) -> "GraphLDConfig":
        """Build a configuration from ``GRAPHLD_*`` environment variables."""
        config = cls()
        if os.getenv("GRAPHLD_URL"):
            config.endpoint.url = os.getenv("GRAPHLD_URL")
        if os.getenv("GRAPHLD_TIMEOUT"):
            config.endpoint.timeout_seconds = float(os.getenv("GRAPHLD_TIMEOUT"))
        if os.getenv("GRAPHLD_MAX_DEPTH"):
            config.expansion.max_depth = int(os.getenv("GRAPHLD_MAX_DEPTH"))
        if os.getenv("GRAPHLD_DEEP"):
            config.expansion.deep = _env_bool(os.getenv("GRAPHLD_DEEP"))
        return config

    def save(self, path: Path) -> None:
        """Save configuration as JSON."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "GraphLDConfig":
        """Load configuration from JSON, falling back to defaults."""
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data)
        logger.debug(f"No config at {path}, using defaults")
        return cls()


class ConfigValidator:
    """Validates GraphLD configurations."""

    @staticmethod
    def validate(config: GraphLDConfig) -> List[str]:
        """
        Validate configuration.

        Returns list of error messages (empty if valid).
        """
        errors = []

        if config.expansion.max_depth < 1:
            errors.append("max_depth must be at least 1")

        if config.expansion.max_concurrency < 1:
            errors.append("max_concurrency must be at least 1")

        if config.endpoint.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")

        if config.endpoint.url is not None and not config.endpoint.url.startswith(("http://", "https://")):
            errors.append(f"Invalid endpoint url: {config.endpoint.url}")

        if config.context.loader_timeout_seconds <= 0:
            errors.append("loader_timeout_seconds must be positive")

        return errors

    @staticmethod
    def validate_or_raise(config: GraphLDConfig) -> None:
        """Validate configuration, raising on errors."""
        errors = ConfigValidator.validate(config)
        if errors:
            raise ConfigValidationError("; ".join(errors))
