"""
RDF-KV Configuration Loader

This module loads RDF-KV configuration from YAML files and builds
processors from it. Missing sections fall back to default values, and a
few settings can be overridden from the environment:

- RDFKV_SUBJECT: Override the default subject
- RDFKV_GRAPH: Override the default graph
- RDFKV_LOG_LEVEL: Override the log level
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from rdflib import BNode, URIRef

from ..kv.errors import ConfigurationError
from ..kv.processor import KVProcessor
from ..kv.terms import TermCallback

logger = logging.getLogger(__name__)


def to_resource(value: str):
    """Turn a configured subject or graph string into a URIRef or BNode."""
    if value.startswith("_:"):
        return BNode(value[2:])
    return URIRef(value)


class RDFKVConfig:
    """
    RDF-KV configuration loader and manager.

    Loads configuration from a YAML file and provides access to
    configuration sections merged over default values.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Optional path to a configuration file. Without one
                only defaults and environment overrides apply.
        """
        self.config_data: Dict[str, Any] = {}
        self.config_path: Optional[str] = None

        if config_path is not None:
            self.load_config(config_path)

    def load_config(self, config_path: str) -> None:
        """
        Load configuration from a specific file path.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigurationError: If the file cannot be loaded or parsed
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML configuration: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration file: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {config_path}")

        self.config_data = config_data
        self.config_path = str(config_file.absolute())
        logger.info(f"Loaded configuration from: {self.config_path}")

    def _get_default_config(self) -> Dict[str, Any]:
        """
        Get the default configuration values.

        Returns:
            Dictionary containing default configuration values
        """
        return {
            'processor': {
                'subject': None,
                'graph': None,
                'prefixes': {}
            },
            'app': {
                'log_level': 'INFO'
            }
        }

    def get_processor_config(self) -> Dict[str, Any]:
        """
        Get processor configuration section, with environment overrides.

        Returns:
            Dictionary containing processor configuration
        """
        defaults = self._get_default_config()['processor']
        config = {**defaults, **(self.config_data.get('processor') or {})}

        config['subject'] = os.getenv('RDFKV_SUBJECT', config['subject'])
        config['graph'] = os.getenv('RDFKV_GRAPH', config['graph'])
        return config

    def get_prefixes(self) -> Dict[str, str]:
        """
        Get the configured prefix map.

        Returns:
            Dictionary of prefix name to namespace URI
        """
        prefixes = self.get_processor_config().get('prefixes') or {}
        if not isinstance(prefixes, dict):
            raise ConfigurationError("processor.prefixes must be a mapping")
        return {str(name): str(uri) for name, uri in prefixes.items()}

    def get_app_config(self) -> Dict[str, Any]:
        """
        Get application configuration section.

        Returns:
            Dictionary containing app configuration
        """
        defaults = self._get_default_config()['app']
        config = {**defaults, **(self.config_data.get('app') or {})}
        config['log_level'] = os.getenv('RDFKV_LOG_LEVEL', config['log_level'])
        return config

    def get_log_level(self) -> str:
        return str(self.get_app_config().get('log_level', 'INFO')).upper()

    def validate_config(self) -> None:
        """
        Validate the loaded configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        self.get_prefixes()

        level = self.get_log_level()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"Invalid log level: {level}")

        logger.debug("Configuration validation passed")

    def create_processor(self, subject: Optional[str] = None, graph: Optional[str] = None,
                         callback: Optional[TermCallback] = None) -> KVProcessor:
        """
        Build a processor from the configuration.

        Args:
            subject: Subject overriding the configured one
            graph: Graph overriding the configured one
            callback: Optional term rewrite callback

        Returns:
            A new KVProcessor

        Raises:
            ConfigurationError: If no subject is configured
        """
        processor_config = self.get_processor_config()

        subject = subject or processor_config.get('subject')
        if not subject:
            raise ConfigurationError("Missing required processor configuration: subject")

        graph = graph or processor_config.get('graph')

        return KVProcessor(
            to_resource(str(subject)),
            graph=to_resource(str(graph)) if graph else None,
            prefixes=self.get_prefixes(),
            callback=callback,
        )

    def __str__(self) -> str:
        """String representation of the configuration."""
        return f"RDFKVConfig(path={self.config_path}, sections={list(self.config_data.keys())})"


# Global configuration instance
_config_instance: Optional[RDFKVConfig] = None


def get_config(config_path: Optional[str] = None) -> RDFKVConfig:
    """
    Get the global configuration instance.

    Args:
        config_path: Optional path to configuration file. Only used on first call.

    Returns:
        RDFKVConfig instance
    """
    global _config_instance

    if _config_instance is None:
        _config_instance = RDFKVConfig(config_path)
        _config_instance.validate_config()

    return _config_instance


def reload_config(config_path: Optional[str] = None) -> RDFKVConfig:
    """
    Reload the global configuration instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        New RDFKVConfig instance
    """
    global _config_instance

    _config_instance = RDFKVConfig(config_path)
    _config_instance.validate_config()

    return _config_instance
