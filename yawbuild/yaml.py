"""YAML/JSON loader for release config files.

Usage:
    from yawbuild.yaml import load, dumps

    # Load from file (auto-detects format from extension)
    data = load(Path('release.yaml'))
    data = load(Path('release.json'))

    # Dump to string
    yaml_str = dumps(data, format='yaml')
"""

from pathlib import Path
from typing import Any, Optional, Union
import json

import yaml as _yaml


def _detect_format(path: Union[str, Path]) -> str:
    """Detect file format from extension."""
    suffix = Path(path).suffix.lower()
    if suffix == '.json':
        return 'json'
    return 'yaml'


def load(source: Union[str, Path], format: Optional[str] = None) -> Any:
    """Load data from a file path.

    Args:
        source: File path (str or Path)
        format: 'yaml', 'json', or None to auto-detect from extension

    Returns:
        Parsed data (usually dict or list)

    Raises:
        OSError: If the file can't be read
        json.JSONDecodeError: If JSON parsing fails
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(source)
    if format is None:
        format = _detect_format(path)

    with open(path, 'r', encoding='utf-8') as f:
        if format == 'yaml':
            return _yaml.safe_load(f)
        return json.load(f)


def dumps(data: Any, format: str = 'yaml', **kwargs: Any) -> str:
    """Dump data to a string.

    Args:
        data: Data to serialize
        format: 'yaml' or 'json'
        **kwargs: Additional arguments passed to yaml.dump or json.dumps
    """
    if format == 'yaml':
        kwargs.setdefault('default_flow_style', False)
        kwargs.setdefault('allow_unicode', True)
        kwargs.setdefault('sort_keys', False)
        return _yaml.dump(data, **kwargs)
    kwargs.setdefault('indent', 2)
    kwargs.setdefault('ensure_ascii', False)
    return json.dumps(data, **kwargs)


YAMLError = _yaml.YAMLError
