"""
fsbridge - Main Entry Point

Command-line access to a configured storage backend: list, read, inspect,
upload, move, copy and delete files through the Filesystem facade.
"""

import argparse
import json
import logging
import sys

from .adapters.local import LocalAdapter
from .adapters.memory import MemoryAdapter
from .adapters.sftp import SFTPAdapter
from .cache import MetadataCache
from .config import AppConfig, load_config
from .errors import FilesystemError
from .filesystem import Filesystem
from .logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to configuration file")
    common.add_argument(
        "--adapter", choices=["local", "memory", "sftp"], default=None, help="Storage backend"
    )
    common.add_argument("--root", help="Root directory (local path or remote directory)")
    common.add_argument("--host", help="SFTP host")
    common.add_argument("--port", type=int, help="SFTP port")
    common.add_argument("--user", help="SFTP username")
    common.add_argument("--password", help="SFTP password")
    common.add_argument("--key-file", help="Path to SSH private key (SFTP only)")
    common.add_argument("--no-cache", action="store_true", help="Disable the metadata cache")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        description="fsbridge - one interface over local, in-memory and SFTP storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fsbridge ls --root /srv/data -r
  fsbridge cat --adapter sftp --host myserver.com --key-file ~/.ssh/id_rsa reports/q1.csv
  fsbridge put --config fsbridge.ini backups/db.sql ./db.sql --visibility private
  fsbridge mv --config fsbridge.ini old/name.txt new/name.txt --force
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", parents=[common], help="List a directory")
    ls_parser.add_argument("path", nargs="?", default="", help="Directory (default: root)")
    ls_parser.add_argument("-r", "--recursive", action="store_true", help="List recursively")
    ls_parser.add_argument(
        "--with", dest="with_keys", help="Comma separated metadata keys to include"
    )

    cat_parser = subparsers.add_parser("cat", parents=[common], help="Print a file")
    cat_parser.add_argument("path")

    stat_parser = subparsers.add_parser("stat", parents=[common], help="Show metadata")
    stat_parser.add_argument("path")

    put_parser = subparsers.add_parser("put", parents=[common], help="Upload a local file")
    put_parser.add_argument("path", help="Destination path")
    put_parser.add_argument("source", nargs="?", help="Local file (default: stdin)")
    put_parser.add_argument("--visibility", choices=["public", "private"], default=None)

    rm_parser = subparsers.add_parser("rm", parents=[common], help="Delete a file")
    rm_parser.add_argument("path")
    rm_parser.add_argument(
        "-r", "--recursive", action="store_true", help="Delete a directory and its contents"
    )

    mkdir_parser = subparsers.add_parser("mkdir", parents=[common], help="Create a directory")
    mkdir_parser.add_argument("path")
    mkdir_parser.add_argument("--visibility", choices=["public", "private"], default=None)

    for name, text in (("mv", "Rename or move"), ("cp", "Copy a file")):
        sub = subparsers.add_parser(name, parents=[common], help=text)
        sub.add_argument("source")
        sub.add_argument("destination")
        sub.add_argument("--force", action="store_true", help="Replace an existing destination")

    return parser, parser.parse_args(argv)


def build_filesystem(config: AppConfig):
    """
    Create the adapter and Filesystem described by a configuration.

    Returns:
        (Filesystem, adapter). SFTP adapters are already connected.
    """
    fs_config = config.filesystem
    visibility = fs_config.default_visibility or "public"

    if fs_config.adapter == "sftp":
        logger.info("Connecting to SSH/SFTP server...")
        adapter = SFTPAdapter(config.ssh, config.connection, default_visibility=visibility)
        adapter.connect()
    elif fs_config.adapter == "memory":
        adapter = MemoryAdapter(default_visibility=visibility)
    else:
        adapter = LocalAdapter(config.local.root, default_visibility=visibility)

    cache = MetadataCache(
        ttl_seconds=config.cache.ttl_seconds,
        max_entries=config.cache.max_entries,
        enabled=config.cache.enabled,
    )
    return Filesystem(adapter, cache, fs_config), adapter


def _format_entry(entry) -> str:
    size = "-" if entry.size is None else str(entry.size)
    suffix = "/" if entry.is_dir else ""
    return f"{entry.type:<4} {size:>10}  {entry.path}{suffix}"


def cmd_ls(fs: Filesystem, args) -> int:
    if args.with_keys:
        keys = [key.strip() for key in args.with_keys.split(",") if key.strip()]
        for entry in fs.list_with(keys, args.path, args.recursive):
            print(json.dumps(entry.to_dict(["path", *[k for k in keys if k != "path"]])))
        return 0
    for entry in fs.list_contents(args.path, args.recursive):
        print(_format_entry(entry))
    return 0


def cmd_cat(fs: Filesystem, args) -> int:
    sys.stdout.buffer.write(fs.read(args.path))
    sys.stdout.buffer.flush()
    return 0


def cmd_stat(fs: Filesystem, args) -> int:
    for key, value in fs.get_metadata(args.path).to_dict().items():
        print(f"{key}: {value}")
    return 0


def cmd_put(fs: Filesystem, args) -> int:
    config = {"visibility": args.visibility} if args.visibility else None
    if args.source:
        with open(args.source, "rb") as f:
            metadata = fs.put_stream(args.path, f, config)
    else:
        metadata = fs.put(args.path, sys.stdin.buffer.read(), config)
    print(f"[OK] Uploaded {metadata.path} ({metadata.size if metadata.size is not None else '?'} bytes)")
    return 0


def cmd_rm(fs: Filesystem, args) -> int:
    if args.recursive:
        fs.delete_dir(args.path)
    else:
        fs.delete(args.path)
    print(f"[OK] Deleted {fs.normalize(args.path)}")
    return 0


def cmd_mkdir(fs: Filesystem, args) -> int:
    config = {"visibility": args.visibility} if args.visibility else None
    metadata = fs.create_dir(args.path, config)
    print(f"[OK] Created {metadata.path}/")
    return 0


def cmd_mv(fs: Filesystem, args) -> int:
    fs.rename(args.source, args.destination, overwrite=True if args.force else None)
    print(f"[OK] Moved {fs.normalize(args.source)} -> {fs.normalize(args.destination)}")
    return 0


def cmd_cp(fs: Filesystem, args) -> int:
    fs.copy(args.source, args.destination, overwrite=True if args.force else None)
    print(f"[OK] Copied {fs.normalize(args.source)} -> {fs.normalize(args.destination)}")
    return 0


COMMANDS = {
    "ls": cmd_ls,
    "cat": cmd_cat,
    "stat": cmd_stat,
    "put": cmd_put,
    "rm": cmd_rm,
    "mkdir": cmd_mkdir,
    "mv": cmd_mv,
    "cp": cmd_cp,
}


def main(argv=None):
    """Main entry point."""
    parser, args = parse_args(argv)
    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    adapter = None
    try:
        config = load_config(
            config_path=args.config,
            adapter=args.adapter,
            root=args.root,
            host=args.host,
            port=args.port,
            username=args.user,
            password=args.password,
            key_file=args.key_file,
            no_cache=args.no_cache,
            debug=args.verbose,
        )
        setup_logging(config.logging)
        from . import __version__

        logger.info("Starting fsbridge v%s (%s adapter)", __version__, config.filesystem.adapter)

        fs, adapter = build_filesystem(config)
        return handler(fs, args)

    except FilesystemError as e:
        logger.debug("%s failed: %s", args.command, e)
        print(f"[ERROR] {e}")
        return 1
    except ValueError as e:
        # Configuration validation errors
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1
    except PermissionError as e:
        print(f"[ERROR] Authentication failed: {e}")
        return 1
    except (ConnectionError, TimeoutError) as e:
        print(f"[ERROR] Could not connect to server: {e}")
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        print(f"[ERROR] Fatal error: {e}")
        return 1
    finally:
        if isinstance(adapter, SFTPAdapter):
            try:
                adapter.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting: %s", e)


if __name__ == "__main__":
    sys.exit(main() or 0)
