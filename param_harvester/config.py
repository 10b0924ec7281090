#!/usr/bin/env python3
"""
Configuration loading for the harvester.

Values are layered: built-in defaults, then the YAML config file, then
environment variables (a local .env file is loaded first).
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

from .errors import ConfigurationError

DEFAULT_CONFIG_FILE = 'config.yaml'

DEFAULT_USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko)',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko)',
]

DEFAULTS: Dict[str, Any] = {
    'virustotal_api_key': '',
    'alienvault_api_key': '',
    'concurrency': 5,
    'user_agents': [],
    'rate_limit': 0,
    'request_timeout': 15,
    'run_timeout': 300,
    'commoncrawl_index': 'CC-MAIN-2019-51-index',
    'exclude_extensions': [],
    'alienvault_page_workers': 20,
    'proxy_url': None,
    'verify_ssl_certificates': True,
    'enable_wayback': True,
    'enable_commoncrawl': True,
    'enable_virustotal': True,
    'enable_alienvault': True,
    'log_level': 'INFO',
    'log_file': None,
}


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _to_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


ENV_MAPPING = {
    'VIRUSTOTAL_API_KEY': ('virustotal_api_key', str),
    'ALIENVAULT_API_KEY': ('alienvault_api_key', str),
    'HARVEST_CONCURRENCY': ('concurrency', int),
    'HARVEST_USER_AGENTS': ('user_agents', _to_list),
    'HARVEST_RATE_LIMIT': ('rate_limit', int),
    'HARVEST_REQUEST_TIMEOUT': ('request_timeout', float),
    'HARVEST_RUN_TIMEOUT': ('run_timeout', float),
    'HARVEST_EXCLUDE_EXTENSIONS': ('exclude_extensions', _to_list),
    'HARVEST_PROXY_URL': ('proxy_url', str),
    'COMMONCRAWL_INDEX': ('commoncrawl_index', str),
    'ENABLE_WAYBACK': ('enable_wayback', _to_bool),
    'ENABLE_COMMONCRAWL': ('enable_commoncrawl', _to_bool),
    'ENABLE_VIRUSTOTAL': ('enable_virustotal', _to_bool),
    'ENABLE_ALIENVAULT': ('enable_alienvault', _to_bool),
    'LOG_LEVEL': ('log_level', str),
    'LOG_FILE': ('log_file', str),
}


def load_config(config_path: Optional[str] = None, use_dotenv: bool = True) -> Dict:
    """
    Load configuration from file and environment.

    Args:
        config_path: YAML file to read. When omitted, config.yaml in the
            working directory is used if it exists.
        use_dotenv: Load a .env file before reading the environment

    Returns:
        Configuration dictionary (not yet validated)
    """
    if use_dotenv:
        load_dotenv()

    config = dict(DEFAULTS)

    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
    else:
        path = Path(DEFAULT_CONFIG_FILE)

    if path.is_file():
        try:
            with open(path, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read configuration file {path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")
        config.update(file_config)
        logger.debug(f"Loaded configuration from {path}")

    for env_key, (config_key, converter) in ENV_MAPPING.items():
        env_value = os.getenv(env_key)
        if env_value is not None and env_value != '':
            try:
                config[config_key] = converter(env_value)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to convert {env_key}={env_value}: {e}")

    return config


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _non_negative_number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def validate_config(config: Dict) -> Dict:
    """
    Check required settings and normalise the optional ones in place.

    Raises:
        ConfigurationError: when an API key is missing
    """
    if not config.get('virustotal_api_key'):
        raise ConfigurationError("virus total api key is missing")
    if not config.get('alienvault_api_key'):
        raise ConfigurationError("alien vault api key is missing")

    config['concurrency'] = _positive_int(config.get('concurrency'), DEFAULTS['concurrency'])
    config['alienvault_page_workers'] = _positive_int(
        config.get('alienvault_page_workers'), DEFAULTS['alienvault_page_workers']
    )
    config['rate_limit'] = int(_non_negative_number(config.get('rate_limit'), 0))
    config['request_timeout'] = _non_negative_number(config.get('request_timeout'), DEFAULTS['request_timeout']) \
        or DEFAULTS['request_timeout']
    config['run_timeout'] = _non_negative_number(config.get('run_timeout'), DEFAULTS['run_timeout']) \
        or DEFAULTS['run_timeout']

    user_agents = config.get('user_agents')
    if not isinstance(user_agents, list) or not [ua for ua in user_agents if isinstance(ua, str) and ua]:
        config['user_agents'] = list(DEFAULT_USER_AGENTS)
    else:
        config['user_agents'] = [ua for ua in user_agents if isinstance(ua, str) and ua]

    return config
