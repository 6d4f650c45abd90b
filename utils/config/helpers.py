import yaml
import logging
import os
from typing import Dict, Any, Optional
from datetime import datetime


def load_config(config_path: str) -> Dict[str, Any]:
    """Load YAML configuration file."""
    try:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file)
        return config or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file: {e}")


def setup_logging(config: Dict[str, Any]) -> None:
    """Set up logging configuration."""
    log_config = config.get('logging', {})
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    format_str = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')

    handlers = [logging.StreamHandler()]
    log_file = log_config.get('file', 'snow_albedo_analysis.log')
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=handlers
    )


def get_section(config: Dict[str, Any], *keys: str, default: Optional[Any] = None) -> Any:
    """Walk nested configuration sections, returning default when a key is missing."""
    node: Any = config
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def ensure_directory_exists(path: str) -> None:
    """Create directory if it doesn't exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def validate_file_exists(file_path: str) -> bool:
    """Check if file exists."""
    return os.path.isfile(file_path)


def get_timestamp() -> str:
    """Get current timestamp as string."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")
