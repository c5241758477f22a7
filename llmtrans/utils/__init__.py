"""Utility functions and helpers."""

from .logger import setup_logger, get_logger
from .config_loader import load_config, save_config
from .frontmatter import extract_frontmatter, merge_frontmatter, update_frontmatter

__all__ = [
    'setup_logger',
    'get_logger',
    'load_config',
    'save_config',
    'extract_frontmatter',
    'merge_frontmatter',
    'update_frontmatter'
]
