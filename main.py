#!/usr/bin/env python3
"""
noteferry - Note record migration tool

Main entry point for noteferry. Loads note records into a local DuckDB store
and migrates them into a vault of frontmatter Markdown documents, with
backups, validation and optional Git versioning of the vault.
"""

import argparse
import logging
import sys
from pathlib import Path

from noteferry.config import ConfigManager
from noteferry.database import RecordDatabase
from noteferry.documents import DocumentConverter
from noteferry.migration import (
    BackupManager,
    DirectorySnapshotSink,
    MigrationOrchestrator,
    MigrationValidator,
    RecordCleaner,
    StorageSnapshotSink,
)
from noteferry.models import MigrationOptions, MigrationProgress, RestoreOptions
from noteferry.sources import DatabaseRecordSource, JsonRecordSource
from noteferry.storage import LocalDirectoryStorage
from noteferry.versioning import VaultVersioner


def setup_logging(config: ConfigManager):
    """Configure logging for the application."""
    level = getattr(logging, str(config.get("logging.level", "INFO")).upper(), logging.INFO)
    format_str = config.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(config.log_filename, encoding='utf-8')
        ],
        force=True
    )


def log_progress(progress: MigrationProgress):
    """Progress callback that writes one log line per step."""
    if progress.error:
        logging.warning(f"[{progress.stage.value}] {progress.processed}/{progress.total} {progress.current_item or ''}: {progress.error}")
    elif progress.current_item:
        logging.debug(f"[{progress.stage.value}] {progress.processed}/{progress.total} {progress.current_item}")
    else:
        logging.info(f"[{progress.stage.value}] {progress.processed}/{progress.total}")


def build_orchestrator(config: ConfigManager, db: RecordDatabase, root_dir: str) -> MigrationOrchestrator:
    """
    Wire up the migration components for a local vault.

    Args:
        config: Loaded configuration
        db: Connected record database used as the source
        root_dir: Vault root directory

    Returns:
        A ready-to-run orchestrator
    """
    extension = config.file_extension
    storage = LocalDirectoryStorage(root_dir, allowed_extensions=[extension])
    cleaner = RecordCleaner()
    converter = DocumentConverter(cleaner=cleaner, file_extension=extension)

    backup_manager = BackupManager(
        sink=StorageSnapshotSink(storage, subdirectory=config.get("storage.backups_dir", "backups")),
        version=config.get("backup.version", "1.0.0"),
        cleaner=cleaner
    )
    validator = MigrationValidator(
        storage,
        converter,
        tolerance_ms=config.timestamp_tolerance_ms,
        error_rate_threshold=config.get("validation.error_rate_threshold", 0.10),
        warning_rate_threshold=config.get("validation.warning_rate_threshold", 0.05)
    )

    return MigrationOrchestrator(
        source=DatabaseRecordSource(db),
        storage=storage,
        converter=converter,
        cleaner=cleaner,
        backup_manager=backup_manager,
        validator=validator,
        progress_callback=log_progress,
        notes_dir_name=config.get("storage.notes_dir", "notes"),
        trash_dir_name=config.get("storage.trash_dir", "trash"),
        test_dir_name=config.get("storage.test_dir", "migration-test"),
        per_record_ms=config.get("migration.per_record_ms", 100)
    )


def run_import(config: ConfigManager, args) -> int:
    """Load a JSON export into the record database."""
    source = JsonRecordSource(args.path)
    cleaning = RecordCleaner().clean_collection(source.load_records())

    for issue in cleaning.fixed_issues:
        logging.info(f"Fixed: {issue}")
    for issue in cleaning.unfixable_issues:
        logging.warning(f"Skipped: {issue}")

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        if args.replace:
            db.clear_records()
        added = db.add_records(cleaning.cleaned_records)

    print(f"Imported {added} of {cleaning.original_count} records into {config.database_filename}")
    return 0


def run_migrate(config: ConfigManager, args) -> int:
    """Migrate the record database into the vault."""
    root_dir = args.target or config.root_directory

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        orchestrator = build_orchestrator(config, db, root_dir)

        summary = orchestrator.has_data_to_migrate()
        if not summary.has_data:
            print("Nothing to migrate: the record database is empty.")
            return 0

        estimate = orchestrator.estimate_duration(summary.active + summary.trash)
        logging.info(f"Migrating {summary.active} records and {summary.trash} trashed records (about {estimate.minutes}m {estimate.seconds}s)")

        options = MigrationOptions(
            include_trash=config.get("migration.include_trash", True) and not args.no_trash,
            create_backup=config.get("migration.create_backup", True) and not args.no_backup,
            overwrite_existing=config.get("migration.overwrite_existing", False) or args.overwrite
        )
        result = orchestrator.migrate(options)
        db.log_migration_run(result, target=root_dir)

    if result.validation is not None:
        print(MigrationValidator.generate_report(result.validation))

    if result.success and (args.commit or config.get("git.auto_commit", False)):
        versioner = VaultVersioner(
            root_dir,
            author_name=config.get("git.author_name", "noteferry"),
            author_email=config.get("git.author_email", "noteferry@localhost"),
            test_dir=config.get("storage.test_dir", "migration-test")
        )
        if not (versioner.initialize_repository() and versioner.create_migration_commit(result)):
            logging.warning("Could not commit the migrated vault")

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETED" if result.success else "MIGRATION FAILED")
    print("=" * 60)
    print(f"- Records migrated: {result.migrated_records}")
    print(f"- Trash migrated:   {result.migrated_trash}")
    print(f"- Errors:           {len(result.errors)}")
    print(f"- Warnings:         {len(result.warnings)}")
    if result.backup_path:
        print(f"- Backup:           {result.backup_path}")
    for error in result.errors:
        print(f"  ! {error}")

    return 0 if result.success else 1


def run_test_migration(config: ConfigManager, args) -> int:
    """Write a handful of records into a scratch directory."""
    root_dir = args.target or config.root_directory
    max_records = args.max_records or config.get("migration.test_max_records", 3)

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        orchestrator = build_orchestrator(config, db, root_dir)
        result = orchestrator.test_migration(max_records=max_records)

    scratch = Path(root_dir) / config.get("storage.test_dir", "migration-test")
    print(f"Test migration wrote {result.migrated_records + result.migrated_trash} records to {scratch}")
    for error in result.errors:
        print(f"  ! {error}")
    return 0 if result.success else 1


def run_backup(config: ConfigManager, args) -> int:
    """Write a manual snapshot of the record database."""
    output_dir = args.output or str(Path(config.root_directory) / config.get("storage.backups_dir", "backups"))
    manager = BackupManager(sink=DirectorySnapshotSink(output_dir), version=config.get("backup.version", "1.0.0"))

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        records = db.list_records(include_deleted=True)

    size = manager.estimate_size(records)
    logging.info(f"Backing up {len(records)} records (about {size['kb']} KB)")
    path = manager.create_manual_backup(records, args.name)
    print(f"Backup written to {path}")
    return 0


def run_restore(config: ConfigManager, args) -> int:
    """Load a snapshot into the record database."""
    manager = BackupManager()
    with open(args.path, 'r', encoding='utf-8') as f:
        data = manager.load_snapshot(f.read())

    info = manager.get_snapshot_info(data)
    logging.info(f"Snapshot {info.version} ({info.kind}) from {info.timestamp}: {info.total} records, {info.deleted} in trash")

    restored = manager.restore(data, RestoreOptions(replace_all=args.replace, include_deleted=not args.exclude_deleted))

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        if restored.replace_all:
            db.clear_records()
        added = db.add_records(restored.records)

    print(f"Restored {added} records ({restored.dropped} invalid, {restored.skipped_deleted} trashed records skipped)")
    return 0


def run_validate(config: ConfigManager, args) -> int:
    """Validate an existing vault against the record database."""
    root = Path(args.target or config.root_directory)
    extension = config.file_extension
    storage = LocalDirectoryStorage(str(root), allowed_extensions=[extension])
    validator = MigrationValidator(storage, DocumentConverter(file_extension=extension), tolerance_ms=config.timestamp_tolerance_ms)

    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        active = db.list_records(include_deleted=False)
        trash = db.list_records(deleted_only=True)

    trash_dir = root / config.get("storage.trash_dir", "trash")
    result = validator.validate_migrated_data(
        root / config.get("storage.notes_dir", "notes"),
        trash_dir if trash_dir.is_dir() else None,
        active,
        trash if trash_dir.is_dir() else []
    )

    print(validator.generate_report(result))
    return 0 if result.is_valid else 1


def run_estimate(config: ConfigManager, args) -> int:
    """Estimate how long migrating the record database will take."""
    with RecordDatabase(config.database_filename) as db:
        db.initialize_database()
        total = db.count_records(include_deleted=not args.no_trash)
        orchestrator = build_orchestrator(config, db, config.root_directory)
        estimate = orchestrator.estimate_duration(total)

    print(f"{total} records: about {estimate.minutes}m {estimate.seconds}s")
    return 0


COMMANDS = {
    "import": run_import,
    "migrate": run_migrate,
    "test-migration": run_test_migration,
    "backup": run_backup,
    "restore": run_restore,
    "validate": run_validate,
    "estimate": run_estimate,
}


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="noteferry - Note record migration tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py import notes-export.json         # Load an export into the record database
  python main.py test-migration                   # Dry run with a few records
  python main.py migrate --commit                 # Migrate into ./vault and commit it
  python main.py restore backups/backup.json --replace
        """
    )

    parser.add_argument(
        "--config",
        default="noteferry.yaml",
        help="Path to the configuration file (default: noteferry.yaml)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="noteferry 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Load a JSON export or snapshot into the record database")
    import_parser.add_argument("path", help="JSON file with a record list, a snapshot or a note export")
    import_parser.add_argument("--replace", action="store_true", help="Clear the record database first")

    migrate_parser = subparsers.add_parser("migrate", help="Migrate all records into the vault")
    migrate_parser.add_argument("--target", help="Vault root directory (default: storage.root_dir)")
    migrate_parser.add_argument("--no-trash", action="store_true", help="Leave trashed records out")
    migrate_parser.add_argument("--no-backup", action="store_true", help="Skip the pre-migration snapshot")
    migrate_parser.add_argument("--overwrite", action="store_true", help="Overwrite existing documents")
    migrate_parser.add_argument("--commit", action="store_true", help="Commit the vault with Git afterwards")

    test_parser = subparsers.add_parser("test-migration", help="Dry run into a scratch directory")
    test_parser.add_argument("--target", help="Vault root directory (default: storage.root_dir)")
    test_parser.add_argument("--max-records", type=int, help="Number of records to write")

    backup_parser = subparsers.add_parser("backup", help="Write a manual snapshot")
    backup_parser.add_argument("--name", help="Snapshot name without extension")
    backup_parser.add_argument("--output", help="Directory to write the snapshot to")

    restore_parser = subparsers.add_parser("restore", help="Restore a snapshot into the record database")
    restore_parser.add_argument("path", help="Snapshot JSON file")
    restore_parser.add_argument("--replace", action="store_true", help="Clear the record database first")
    restore_parser.add_argument("--exclude-deleted", action="store_true", help="Skip trashed records")

    validate_parser = subparsers.add_parser("validate", help="Validate a vault against the record database")
    validate_parser.add_argument("--target", help="Vault root directory (default: storage.root_dir)")

    estimate_parser = subparsers.add_parser("estimate", help="Estimate migration duration")
    estimate_parser.add_argument("--no-trash", action="store_true", help="Leave trashed records out")

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    config = ConfigManager(args.config)
    setup_logging(config)

    logging.info(f"noteferry - {args.command}")

    try:
        exit_code = COMMANDS[args.command](config, args)

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print("\nInterrupted.")
        exit_code = 130

    except Exception as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"\n{args.command} failed: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
