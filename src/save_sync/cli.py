"""Command-line interface for save-sync."""

import sys
from pathlib import Path
from typing import List, Optional

import click
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from . import __version__
from .archive import Archive
from .config.settings import ConfigManager, SyncConfig
from .errors import SaveSyncError
from .store import FileQuery, MetadataStore, Save, SaveQuery, User, UserQuery
from .sync.change_detector import ChangeKind, ChangeRecord
from .sync.save_manager import SaveManager
from .sync.users import resolve_local_user
from .utils.file_utils import FileHelper
from .utils.logging import setup_logging

console = Console(soft_wrap=True)


class AppContext:
    """Lazily built configuration, store and save manager for one invocation."""

    def __init__(self, config_path: Optional[Path]):
        self.config_manager = ConfigManager(config_path)
        self._config: Optional[SyncConfig] = None
        self._store: Optional[MetadataStore] = None
        self._manager: Optional[SaveManager] = None

    @property
    def config(self) -> SyncConfig:
        if self._config is None:
            self._config = self.config_manager.load()
            setup_logging(log_level=self._config.log_level, log_file=self._config.log_file)
        return self._config

    @property
    def store(self) -> MetadataStore:
        if self._store is None:
            self._store = MetadataStore(self.config.db_location)
        return self._store

    @property
    def manager(self) -> SaveManager:
        if self._manager is None:
            self._manager = SaveManager(self.store, self.config)
        return self._manager

    def local_user(self) -> User:
        return resolve_local_user(self.store, self.config, self.config_manager)

    def close(self) -> None:
        if self._store is not None:
            self._store.close()


def _fail(error: Exception) -> None:
    console.print(f"❌ Error: {error}", style="red bold")
    sys.exit(1)


def _select_save(app: AppContext, path: Optional[str], friendly: Optional[str]) -> Save:
    if not path and not friendly:
        raise click.UsageError("Provide a save PATH or --friendly NAME.")
    return app.manager.find_save(path=path, friendly_name=friendly)


def _print_changes(save: Save, changes: List[ChangeRecord]) -> None:
    if not changes:
        if save.friendly_name:
            console.print(f"✅ {save.friendly_name}'s backup is up to date.", style="green")
        else:
            console.print(f"✅ No changes were detected in {save.save_path}", style="green")
        return

    console.print("⚠️ The backup and the current save differ\n", style="yellow bold")
    sections = [
        (ChangeKind.NEW, "New Files", "green"),
        (ChangeKind.UPDATED, "Changed Files", "yellow"),
        (ChangeKind.MISSING, "Missing Files", "red"),
    ]
    for kind, title, style in sections:
        paths = [change.path for change in changes if change.kind is kind]
        if paths:
            rprint(f"[bold]{title}:[/bold]")
            for path in paths:
                console.print(f"   • {path}", style=style, highlight=False)


friendly_option = click.option('--friendly', '-f', metavar='NAME',
                               help='The friendly name of the save')
path_argument = click.argument('path', required=False, type=click.Path(path_type=str))


@click.group()
@click.version_option(version=__version__)
@click.option('--config', '-c',
              type=click.Path(dir_okay=False, path_type=Path),
              default=None,
              help='Path to settings file (default: $SAVE_SYNC_CONFIG_PATH or the app directory)')
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path]):
    """Save Sync

    Backs up directories to a content-tracked local store and keeps the
    backup in sync with the original.
    """
    app = AppContext(config)
    ctx.obj = app
    ctx.call_on_close(app.close)


@cli.command()
@click.pass_obj
def init(app: AppContext):
    """Write a configuration file with default settings."""
    path = app.config_manager.config_path
    if path.exists():
        if not click.confirm(f"Configuration file {path} already exists. Overwrite?"):
            return

    try:
        app.config_manager.write(SyncConfig())
    except SaveSyncError as e:
        _fail(e)

    console.print(f"✅ Configuration saved to {path}", style="green")


@cli.command()
@click.argument('path', type=click.Path(path_type=str))
@friendly_option
@click.pass_obj
def add(app: AppContext, path: str, friendly: Optional[str]):
    """Add PATH to the list of tracked saves and back it up."""
    try:
        user = app.local_user()
        with console.status(f"Backing up {path}..."):
            save = app.manager.create_save(path, user, friendly)
    except SaveSyncError as e:
        _fail(e)

    console.print(f"✅ Now tracking {save.save_path}", style="green", highlight=False)
    console.print(f"   Backup: {save.backup_path}", highlight=False)


@cli.command('list')
@click.pass_obj
def list_saves(app: AppContext):
    """List every tracked save of the local user."""
    try:
        user = app.local_user()
        saves = app.store.get_saves(SaveQuery().with_user_id(user.id))
    except SaveSyncError as e:
        _fail(e)

    if not saves:
        console.print("No saves in database.", style="yellow")
        return

    table = Table(title=f"Saves of {user.username}")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("UUID", style="magenta")
    table.add_column("Modified", justify="right")

    for save in saves:
        table.add_row(
            save.friendly_name or "-",
            save.save_path,
            save.uuid,
            save.modified_at.strftime('%Y-%m-%d %H:%M:%S'),
        )

    console.print(table)


@cli.command()
@path_argument
@friendly_option
@click.option('--delta', '-d', is_flag=True,
              help='Determine which files have changed since the last backup')
@click.pass_obj
def info(app: AppContext, path: Optional[str], friendly: Optional[str], delta: bool):
    """Display information about a save."""
    try:
        save = _select_save(app, path, friendly)
        owner = app.store.get_user(UserQuery().with_id(save.user_id))
        files = app.store.get_files(FileQuery().with_save_id(save.id)) or []
        changes = app.manager.check_save(save) if delta else None
    except SaveSyncError as e:
        _fail(e)

    backup_size = 0
    if Path(save.backup_path).exists():
        backup_size = FileHelper.directory_size(Path(save.backup_path))

    console.print(f"[bold]\"{save.save_path}\"[/bold]")
    console.print("---")
    console.print(f"Friendly name: {save.friendly_name or 'none'}")
    console.print(f"Belongs to: {owner.username if owner else f'User #{save.user_id}'}")
    console.print(f"UUID: {save.uuid}")
    console.print(f"Backup path: {save.backup_path}")
    console.print(f"Tracked files: {len(files)} ({FileHelper.format_file_size(backup_size)} backed up)")
    console.print(f"Created: {save.created_at}")
    console.print(f"Modified: {save.modified_at}")

    if changes is not None:
        console.print()
        _print_changes(save, changes)


@cli.command()
@path_argument
@friendly_option
@click.pass_obj
def verify(app: AppContext, path: Optional[str], friendly: Optional[str]):
    """Verify that a save's backup is up to date."""
    try:
        save = _select_save(app, path, friendly)
        with console.status(f"Checking {save.display_name}..."):
            changes = app.manager.check_save(save)
    except SaveSyncError as e:
        _fail(e)

    _print_changes(save, changes)


cli.add_command(verify, name='check')


@cli.command()
@path_argument
@friendly_option
@click.pass_obj
def update(app: AppContext, path: Optional[str], friendly: Optional[str]):
    """Update the backup of a save, or of every save when none is given."""
    try:
        if path or friendly:
            saves = [_select_save(app, path, friendly)]
        else:
            user = app.local_user()
            saves = app.store.get_saves(SaveQuery().with_user_id(user.id)) or []

        for save in saves:
            with console.status(f"Updating {save.display_name}..."):
                changelog = app.manager.update_save(save)

            if changelog is None:
                console.print(f"✅ {save.display_name} is already up to date.", style="green",
                              highlight=False)
            else:
                console.print(f"🔄 Updated {save.display_name}:", style="cyan bold", highlight=False)
                for line in changelog.splitlines():
                    console.print(f"   • {line}", highlight=False)
    except SaveSyncError as e:
        _fail(e)


@cli.command()
@path_argument
@friendly_option
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_obj
def delete(app: AppContext, path: Optional[str], friendly: Optional[str], yes: bool):
    """Stop tracking a save and remove its backup."""
    try:
        save = _select_save(app, path, friendly)
        if not yes and not click.confirm(f"Delete the backup of {save.display_name}?"):
            return
        app.manager.delete_save(save)
    except SaveSyncError as e:
        _fail(e)

    console.print(f"🗑️ Deleted {save.display_name} and its backup", style="green", highlight=False)


cli.add_command(delete, name='del')


@cli.command()
@click.argument('new_name')
@path_argument
@friendly_option
@click.pass_obj
def rename(app: AppContext, new_name: str, path: Optional[str], friendly: Optional[str]):
    """Set the friendly name of a save to NEW_NAME."""
    try:
        save = _select_save(app, path, friendly)
        save = app.manager.rename_save(save, new_name)
    except SaveSyncError as e:
        _fail(e)

    console.print(f"✅ {save.save_path} is now labelled \"{save.friendly_name}\"", style="green",
                  highlight=False)


@cli.command()
@click.argument('target', type=click.Path(dir_okay=False, path_type=Path))
@path_argument
@friendly_option
@click.pass_obj
def export(app: AppContext, target: Path, path: Optional[str], friendly: Optional[str]):
    """Compress the backup of a save into the single file TARGET."""
    try:
        save = _select_save(app, path, friendly)
        with console.status(f"Compressing {save.backup_path}..."):
            Archive.compress(save.backup_path, target)
    except SaveSyncError as e:
        _fail(e)

    size = FileHelper.format_file_size(target.stat().st_size)
    console.print(f"✅ Exported {save.display_name} to {target} ({size})", style="green",
                  highlight=False)


@cli.command('import')
@click.argument('archive', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('target', type=click.Path(path_type=Path))
def import_(archive: Path, target: Path):
    """Restore ARCHIVE (made by export) into TARGET."""
    try:
        with console.status(f"Decompressing {archive}..."):
            Archive.decompress(archive, target)
    except SaveSyncError as e:
        _fail(e)

    console.print(f"✅ Restored {archive} into {target}", style="green", highlight=False)


if __name__ == '__main__':
    cli()
