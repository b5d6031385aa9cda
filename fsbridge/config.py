import configparser
from dataclasses import dataclass, field
from pathlib import Path

ADAPTERS = ("local", "memory", "sftp")

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class FilesystemConfig:
    adapter: str = "local"  # "local", "memory" or "sftp"
    strict_config: bool = True  # Reject unknown per-call options
    allow_overwrite: bool = False  # rename/copy may replace an existing target
    default_visibility: str | None = None
    cache_listing_entries: bool = True  # Also cache each record of a listing


@dataclass
class CacheConfig:
    enabled: bool = True
    ttl_seconds: int | None = 60  # None disables expiry
    max_entries: int = 10000


@dataclass
class LocalConfig:
    root: str | None = None


@dataclass
class SSHConfig:
    host: str
    port: int = 22
    username: str | None = None
    password: str | None = None
    key_file: str | None = None  # Path to SSH private key
    key_passphrase: str | None = None  # Passphrase for encrypted keys
    use_agent: bool = True  # Try SSH agent for auth
    root: str = "/"  # Remote directory the filesystem is rooted at


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    retry_attempts: int = 3
    retry_delay_seconds: int = 1
    keepalive_interval_seconds: int = 60


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str | None = None
    console: bool = True


@dataclass
class AppConfig:
    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LogConfig = field(default_factory=LogConfig)
    local: LocalConfig = field(default_factory=LocalConfig)
    ssh: SSHConfig | None = None


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _as_optional_int(value: str) -> int | None:
    value = value.strip()
    if not value or value.lower() == "none":
        return None
    return int(value)


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over the config file; None means "not given".

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If the adapter is unknown or its required fields are missing.
    """
    fs_config = {
        "adapter": "local",
        "strict_config": True,
        "allow_overwrite": False,
        "default_visibility": None,
        "cache_listing_entries": True,
    }
    cache_config = {
        "enabled": True,
        "ttl_seconds": 60,
        "max_entries": 10000,
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
        "keepalive_interval_seconds": 60,
    }
    log_config = {
        "level": "INFO",
        "file": None,
        "console": True,
    }
    local_config = {"root": None}
    ssh_config = {
        "host": None,
        "port": 22,
        "username": None,
        "password": None,
        "key_file": None,
        "key_passphrase": None,
        "use_agent": True,
        "root": "/",
    }

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(path, encoding="utf-8")

        if parser.has_section("filesystem"):
            section = parser["filesystem"]
            if section.get("adapter"):
                fs_config["adapter"] = section["adapter"].strip().lower()
            if section.get("strict_config"):
                fs_config["strict_config"] = _as_bool(section["strict_config"])
            if section.get("allow_overwrite"):
                fs_config["allow_overwrite"] = _as_bool(section["allow_overwrite"])
            if section.get("default_visibility"):
                fs_config["default_visibility"] = section["default_visibility"].strip().lower()
            if section.get("cache_listing_entries"):
                fs_config["cache_listing_entries"] = _as_bool(section["cache_listing_entries"])

        if parser.has_section("cache"):
            section = parser["cache"]
            if section.get("enabled"):
                cache_config["enabled"] = _as_bool(section["enabled"])
            if "ttl_seconds" in section:
                cache_config["ttl_seconds"] = _as_optional_int(section["ttl_seconds"])
            if section.get("max_entries"):
                cache_config["max_entries"] = section.getint("max_entries")

        if parser.has_section("connection"):
            section = parser["connection"]
            for key in connection_config:
                if section.get(key):
                    connection_config[key] = section.getint(key)

        if parser.has_section("logging"):
            section = parser["logging"]
            if section.get("level"):
                log_config["level"] = section["level"].strip().upper()
            if "file" in section:
                log_config["file"] = section["file"].strip() or None
            if section.get("console"):
                log_config["console"] = _as_bool(section["console"])

        if parser.has_section("local"):
            section = parser["local"]
            if section.get("root"):
                local_config["root"] = section["root"].strip()

        if parser.has_section("sftp"):
            section = parser["sftp"]
            if section.get("host"):
                ssh_config["host"] = section["host"].strip()
            if section.get("port"):
                ssh_config["port"] = section.getint("port")
            for key in ("username", "password", "key_file", "key_passphrase"):
                if key in section:
                    ssh_config[key] = section[key] or None
            if section.get("use_agent"):
                ssh_config["use_agent"] = _as_bool(section["use_agent"])
            if section.get("root"):
                ssh_config["root"] = section["root"].strip()

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("adapter") is not None:
        fs_config["adapter"] = cli_args["adapter"].lower()
    if cli_args.get("allow_overwrite"):
        fs_config["allow_overwrite"] = True
    if cli_args.get("visibility") is not None:
        fs_config["default_visibility"] = cli_args["visibility"].lower()
    if cli_args.get("root") is not None:
        if fs_config["adapter"] == "sftp":
            ssh_config["root"] = cli_args["root"]
        else:
            local_config["root"] = cli_args["root"]
    if cli_args.get("host") is not None:
        ssh_config["host"] = cli_args["host"]
    if cli_args.get("port") is not None:
        ssh_config["port"] = int(cli_args["port"])
    if cli_args.get("username") is not None:
        ssh_config["username"] = cli_args["username"] or None
    if cli_args.get("password") is not None:
        ssh_config["password"] = cli_args["password"] or None
    if cli_args.get("key_file") is not None:
        ssh_config["key_file"] = cli_args["key_file"]
    if cli_args.get("key_passphrase") is not None:
        ssh_config["key_passphrase"] = cli_args["key_passphrase"]
    if cli_args.get("no_cache"):
        cache_config["enabled"] = False
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate
    adapter = fs_config["adapter"]
    if adapter not in ADAPTERS:
        raise ValueError(f"Unknown adapter: {adapter}. Must be one of: {', '.join(ADAPTERS)}")
    if adapter == "sftp" and not ssh_config["host"]:
        raise ValueError("Missing required configuration fields: host")
    if adapter == "local" and not local_config["root"]:
        raise ValueError("Missing required configuration fields: root")
    visibility = fs_config["default_visibility"]
    if visibility is not None and visibility not in ("public", "private"):
        raise ValueError(f"Invalid default visibility: {visibility}. Must be public or private.")

    ssh_obj = None
    if ssh_config["host"]:
        ssh_obj = SSHConfig(**ssh_config)

    return AppConfig(
        filesystem=FilesystemConfig(**fs_config),
        cache=CacheConfig(**cache_config),
        connection=ConnectionConfig(**connection_config),
        logging=LogConfig(**log_config),
        local=LocalConfig(**local_config),
        ssh=ssh_obj,
    )
