"""Command line driver for restoring tables from a backup image.

Usage:
    walbackup-restore <backup_root_dir> <backup_id> <table(s)> [options]
    walbackup-restore <backup_root_dir> <backup_id> -s <backup_set> [options]
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .._storage import TableFactory
from .._utils import logger, parse_table_names, set_logger_level
from ..backup.system_table import BackupSystemTable
from ..config import BackupConfig
from ..exceptions import ArgumentValidationError, BackupError, BackupSetNotFoundError
from ..models import RestoreRequest
from .admin import BackupAdmin

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_BACKUP_DISABLED = -1
EXIT_USAGE = -1
EXIT_BACKUP_SET_ERROR = -2
EXIT_BACKUP_SET_EMPTY = -3
EXIT_TABLE_MAPPING_MISMATCH = -4
EXIT_RESTORE_FAILED = -5


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise ArgumentValidationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="walbackup-restore",
        description="Restore tables from a backup image",
    )
    parser.add_argument("backup_root_dir", help="Path to a backup destination root")
    parser.add_argument("backup_id", help="Backup image ID to restore")
    parser.add_argument("tables", nargs="?", default=None, help="Comma-separated list of tables to restore")
    parser.add_argument("-o", "--overwrite", action="store_true",
                        help="Overwrite existing tables in the restore target")
    parser.add_argument("-c", "--check", action="store_true",
                        help="Only check the backup image and its dependencies")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-s", "--set", dest="backup_set", default=None,
                        help="Backup set to restore, in place of a table list")
    parser.add_argument("-m", "--mapping", default=None,
                        help="Comma-separated list of target table names, one per restored table")
    parser.add_argument("--env-file", default=None, help="Environment file to load before reading configuration")
    return parser


class RestoreDriver:

    def __init__(self, config: Optional[BackupConfig] = None, store: Optional[BackupSystemTable] = None):
        self.config = config
        self.store = store
        self.parser = build_parser()

    def _open_store(self, config: BackupConfig) -> BackupSystemTable:
        table = TableFactory.create(config.metadata.backend, config.metadata.namespace, config.to_dict())
        return BackupSystemTable(table)

    async def run(self, argv: List[str]) -> int:
        try:
            args = self.parser.parse_args(argv)
        except ArgumentValidationError as e:
            print(f"Error when parsing command-line arguments: {e}")
            self.parser.print_usage()
            return EXIT_FAILURE

        if args.env_file:
            load_dotenv(args.env_file, override=True)
        config = self.config or BackupConfig.from_env()

        if not config.enabled:
            print("Backup is not enabled. To enable backup, set BACKUP_ENABLED=true "
                  "and restart the cluster", file=sys.stderr)
            return EXIT_BACKUP_DISABLED

        if args.debug:
            set_logger_level(logging.DEBUG)
        if args.overwrite:
            logger.debug("Found overwrite option, will overwrite existing tables in the restore target")
        if args.check:
            logger.debug("Found check option, will only verify the backup image and its dependencies")

        if args.backup_set is None and args.tables is None:
            self.parser.print_usage()
            return EXIT_USAGE

        store = self.store or self._open_store(config)
        try:
            return await self._restore(args, store)
        finally:
            if self.store is None:
                await store.close()

    @staticmethod
    async def _backup_set_tables(store: BackupSystemTable, name: str) -> List[str]:
        tables = await store.describe_backup_set(name)
        if tables is None:
            raise BackupSetNotFoundError(name)
        return tables

    async def _restore(self, args: argparse.Namespace, store: BackupSystemTable) -> int:
        if args.backup_set is not None:
            try:
                from_tables = await self._backup_set_tables(store, args.backup_set)
            except BackupSetNotFoundError as e:
                print(f"ERROR: {e}")
                self.parser.print_usage()
                return EXIT_BACKUP_SET_EMPTY
            except BackupError as e:
                print(f"ERROR: {e} for setName={args.backup_set}")
                self.parser.print_usage()
                return EXIT_BACKUP_SET_ERROR
        else:
            from_tables = parse_table_names(args.tables)

        to_tables = parse_table_names(args.mapping)
        if from_tables is not None and to_tables is not None and len(from_tables) != len(to_tables):
            print(f"ERROR: table mapping mismatch: {','.join(from_tables)} : {args.mapping}")
            self.parser.print_usage()
            return EXIT_TABLE_MAPPING_MISMATCH

        request = RestoreRequest(
            backup_root_dir=args.backup_root_dir,
            backup_id=args.backup_id,
            check=args.check,
            from_tables=from_tables or [],
            to_tables=to_tables,
            overwrite=args.overwrite,
        )
        try:
            await BackupAdmin(store).restore(request)
        except Exception as e:
            logger.error(f"Restore of {args.backup_id} failed: {e}")
            print(f"ERROR: {e}", file=sys.stderr)
            return EXIT_RESTORE_FAILED
        return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    return asyncio.run(RestoreDriver().run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    sys.exit(main())
