"""Configuration Management with Pydantic.

This module implements configuration models using Pydantic for parsing and
validation of YAML configuration files with environment variable overrides.
A configuration holds the sorter's unknown-node policy and the logging setup
an application wants for tampopo's log events.
"""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

from tampopo.graph.model import Graph
from tampopo.graph.sorter import UnknownNodePolicy, sort_graph
from tampopo.graph.validator import GraphValidator
from tampopo.log_config import configure_logging

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_FILES = ("tampopo.yaml", "tampopo.yml")


class SortingConfig(BaseModel):
    """Sorter configuration settings.

    Attributes:
        unknown_nodes: How edges that reference undeclared nodes are handled
    """

    unknown_nodes: UnknownNodePolicy = Field(
        default=UnknownNodePolicy.REJECT,
        description="Policy for edge endpoints missing from the node list",
    )

    @field_validator("unknown_nodes", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        """Accept policy names in any case.

        Args:
            v: The raw policy value

        Returns:
            The lower-cased value when given a string, otherwise unchanged
        """
        if isinstance(v, str) and not isinstance(v, UnknownNodePolicy):
            return v.strip().lower()
        return v

    def sort(self, graph: Graph) -> list:
        """Sort a graph with this configuration's unknown-node policy.

        Args:
            graph: The graph to sort

        Returns:
            The graph's nodes in topological order

        Raises:
            UnknownNodeError: If undeclared nodes are rejected and present
            CycleDetectedError: If the graph contains a cycle
        """
        return sort_graph(graph, unknown_nodes=self.unknown_nodes)

    def validator(self) -> GraphValidator:
        """Create a GraphValidator that applies this configuration's policy."""
        return GraphValidator(unknown_nodes=self.unknown_nodes)


class TampopoConfig(BaseModel):
    """Main configuration combining all settings.

    Attributes:
        sorting: Sorter configuration
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render log events as JSON instead of console text
    """

    sorting: SortingConfig = Field(default_factory=SortingConfig)
    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=True,
        description="Render log events as JSON",
    )

    @field_validator("logging_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Upper-case the logging level so 'debug' is accepted."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TampopoConfig":
        """Load configuration from a YAML file.

        An empty file yields the default configuration (plus any environment
        overrides).

        Args:
            path: Path to the YAML configuration file

        Returns:
            Parsed and validated TampopoConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If the file is not valid YAML or not a mapping
            pydantic.ValidationError: If a setting has an invalid value
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            msg = f"Configuration file must contain a mapping, got {type(config_data).__name__}"
            raise ValueError(msg)

        config_data = cls._apply_env_overrides(config_data)
        config = cls(**config_data)

        logger.info(
            "configuration_loaded",
            unknown_nodes=config.sorting.unknown_nodes.value,
            logging_level=config.logging_level,
        )

        return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: TAMPOPO_<SECTION>_<KEY>
        Example: TAMPOPO_SORTING_UNKNOWN_NODES, TAMPOPO_LOGGING_LEVEL

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("sorting", "unknown_nodes"): "TAMPOPO_SORTING_UNKNOWN_NODES",
            ("logging_level",): "TAMPOPO_LOGGING_LEVEL",
            ("json_logs",): "TAMPOPO_JSON_LOGS",
        }

        for path, env_var in env_overrides.items():
            value: Any = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            current[path[-1]] = value
            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if self.sorting.unknown_nodes is UnknownNodePolicy.IMPLICIT:
            warnings.append(
                "Undeclared nodes are added implicitly - typos in edge endpoints "
                "will not be reported",
            )

        if self.logging_level == "DEBUG" and self.json_logs:
            warnings.append("DEBUG logging with JSON output is verbose - consider json_logs: false")

        return warnings

    def configure_logging(self) -> None:
        """Apply this configuration's logging settings."""
        configure_logging(level=self.logging_level, json_logs=self.json_logs)


def load_config(config_path: str | Path | None = None) -> TampopoConfig:
    """Load configuration from file.

    Args:
        config_path: Path to configuration file. If None, looks for
            tampopo.yaml or tampopo.yml in the current directory.

    Returns:
        Loaded TampopoConfig instance

    Raises:
        FileNotFoundError: If config file not found
        ValueError: If config file is invalid
    """
    if config_path is None:
        for default_name in DEFAULT_CONFIG_FILES:
            default_path = Path(default_name)
            if default_path.exists():
                config_path = default_path
                break
        else:
            msg = "No configuration file found. Expected tampopo.yaml or tampopo.yml"
            raise FileNotFoundError(msg)

    return TampopoConfig.from_yaml(config_path)


__all__ = [
    "SortingConfig",
    "TampopoConfig",
    "load_config",
]
