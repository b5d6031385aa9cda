__version__ = "0.1.0"

# Public API exports
from .adapters import Adapter, LocalAdapter, MemoryAdapter, SFTPAdapter
from .cache import MetadataCache
from .config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    FilesystemConfig,
    LocalConfig,
    LogConfig,
    SSHConfig,
    load_config,
)
from .errors import (
    AdapterError,
    FileExists,
    FileNotFound,
    FilesystemError,
    InvalidArgument,
    InvalidConfig,
    InvalidPath,
    MethodNotFound,
    ReadAndDeleteError,
)
from .filesystem import Filesystem
from .handlers import Directory, File, Handler
from .metadata import Listing, Metadata
from .options import Config, ConfigResolver
from .paths import normalize_path
from .plugins import EmptyDir, ForcedCopy, ForcedRename, Plugin, PluginRegistry

__all__ = [
    "__version__",
    # Facade
    "Filesystem",
    "normalize_path",
    "Config",
    "ConfigResolver",
    "Metadata",
    "Listing",
    "MetadataCache",
    # Handlers
    "Handler",
    "File",
    "Directory",
    # Plugins
    "Plugin",
    "PluginRegistry",
    "EmptyDir",
    "ForcedCopy",
    "ForcedRename",
    # Adapters
    "Adapter",
    "LocalAdapter",
    "MemoryAdapter",
    "SFTPAdapter",
    # Configuration
    "AppConfig",
    "FilesystemConfig",
    "CacheConfig",
    "LocalConfig",
    "SSHConfig",
    "ConnectionConfig",
    "LogConfig",
    "load_config",
    # Errors
    "FilesystemError",
    "InvalidPath",
    "InvalidConfig",
    "InvalidArgument",
    "FileNotFound",
    "FileExists",
    "MethodNotFound",
    "AdapterError",
    "ReadAndDeleteError",
]
