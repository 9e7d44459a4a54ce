from .io import read_json, save_json, save_yaml
from .log import setup_logging

__all__ = ["read_json", "save_json", "save_yaml", "setup_logging"]
