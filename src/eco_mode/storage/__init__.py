"""Client-local durable storage backends."""

from eco_mode.storage.base import KeyValueStorage, MemoryStorage
from eco_mode.storage.yaml_file import YamlFileStorage

__all__ = ["KeyValueStorage", "MemoryStorage", "YamlFileStorage"]
