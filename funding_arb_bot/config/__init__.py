"""
Configuration loading
"""

from .settings import (
    ConfigValidationError,
    build_config,
    create_sample_config,
    load_config,
    load_config_from_env,
    save_config,
    validate_config
)

__all__ = [
    'ConfigValidationError',
    'build_config',
    'create_sample_config',
    'load_config',
    'load_config_from_env',
    'save_config',
    'validate_config'
]
