#!/usr/bin/env python3
"""
Command line access to a Field Notes database
"""
import argparse
import logging
import os
import sys

from field_notes.config_manager import ConfigManager
from field_notes.enums import MediaKind, StorageStrategy
from field_notes.exceptions import FieldNotesError, InvalidArgument
from field_notes.local_db import LocalDatabase
from field_notes.logging_config import setup_logging
from field_notes.services.catalog_service import CatalogService
from field_notes.utils import is_video_path

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog='field-notes', description='Field Notes database utility')
    parser.add_argument('--db-path', help='Path to database file (default: per-user data directory)')
    parser.add_argument('--strategy', choices=[s.value for s in StorageStrategy],
                        help='Storage strategy of the database (default: from configuration)')
    parser.add_argument('--log-level', help='Logging level (default: LOG_LEVEL or WARNING)')

    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('list', help='List entries, newest first')

    show = commands.add_parser('show', help='Show one entry')
    show.add_argument('entry_id', type=int)

    add = commands.add_parser('add', help='Add an entry from media files')
    add.add_argument('paths', nargs='+', help='Media file(s); blob storage takes exactly one')
    add.add_argument('--name', default='')
    add.add_argument('--notes', default='')
    add.add_argument('--lat', type=float)
    add.add_argument('--lon', type=float)

    delete = commands.add_parser('delete', help='Delete an entry and its media')
    delete.add_argument('entry_id', type=int)

    commands.add_parser('purge-orphans', help='Delete media no entry references')
    return parser


def _coords(args):
    if args.lat is None and args.lon is None:
        return None
    return args.lat, args.lon


def cmd_list(catalog, args):
    summaries = catalog.list_summaries()
    if not summaries:
        print("No entries")
        return
    for summary in summaries:
        media = 'video' if summary.is_video else 'image'
        voice = ' +voice' if summary.has_voice_recording else ''
        print(f"{summary.id:>5}  {summary.created_at:%Y-%m-%d %H:%M}  {summary.name}  "
              f"({summary.media_count} {media}{voice})")


def cmd_show(catalog, args):
    detail = catalog.get_entry_detail(args.entry_id)
    entry = detail.entry
    print(f"Entry {entry.id}: {entry.name}")
    print(f"  Created:  {entry.created_at:%Y-%m-%d %H:%M:%S}")
    if entry.has_location:
        print(f"  Location: Lat: {entry.latitude:.6f}, Lon: {entry.longitude:.6f}")
    if entry.notes:
        print(f"  Notes:    {entry.notes}")
    if detail.media is not None:
        print(f"  Media:    {detail.media.mime_type}, {detail.media.size_bytes} bytes")
    for item in detail.media_items:
        print(f"  File:     {item.file_path} ({'video' if item.is_video else 'image'})")
    if detail.voice_recording is not None:
        print(f"  Voice:    {detail.voice_recording.duration_seconds}s, "
              f"{detail.voice_recording.size_bytes} bytes")


def cmd_add(catalog, args):
    if catalog.storage_strategy is StorageStrategy.PATH_LIST:
        entry_id = catalog.save_referenced_files(
            args.paths, name=args.name, notes=args.notes, coords=_coords(args)
        )
    else:
        if len(args.paths) != 1:
            raise InvalidArgument("Blob storage keeps one media file per entry")
        path = args.paths[0]
        with open(path, 'rb') as f:
            media_bytes = f.read()
        kind = MediaKind.VIDEO if is_video_path(path) else MediaKind.IMAGE
        entry_id = catalog.save_capture(
            media_bytes, kind, name=args.name, notes=args.notes, coords=_coords(args)
        )
    print(f"✅ Saved entry {entry_id}")


def cmd_delete(catalog, args):
    catalog.delete_entry(args.entry_id)
    print(f"✅ Deleted entry {args.entry_id}")


def cmd_purge_orphans(catalog, args):
    removed = catalog.purge_orphaned_blobs()
    print(f"✅ Removed {removed} orphaned blob(s)")


COMMANDS = {
    'list': cmd_list,
    'show': cmd_show,
    'add': cmd_add,
    'delete': cmd_delete,
    'purge-orphans': cmd_purge_orphans,
}


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or os.getenv('LOG_LEVEL', 'WARNING'))

    config = ConfigManager()
    db = LocalDatabase(args.db_path, storage_strategy=args.strategy, config=config)
    catalog = CatalogService(db)

    try:
        COMMANDS[args.command](catalog, args)
    except (FieldNotesError, OSError) as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"❌ Error: {e}")
        return 1
    finally:
        db.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
