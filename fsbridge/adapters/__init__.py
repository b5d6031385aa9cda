from .base import Adapter
from .local import LocalAdapter
from .memory import MemoryAdapter
from .sftp import SFTPAdapter

__all__ = ["Adapter", "LocalAdapter", "MemoryAdapter", "SFTPAdapter"]
