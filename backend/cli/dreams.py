"""CLI for submitting dreams and managing saved analyses."""
import argparse
import asyncio
import json
import sys
from uuid import UUID

from dreammapper.core.database import init_db
from dreammapper.core.errors import (DreamAnalysisError, DreamNotFound,
                                     InferenceUnavailable, PersistenceError)
from dreammapper.core.ollama_client import get_ollama_client
from dreammapper.models.analysis_types import AnalysisRequest
from dreammapper.services.analysis_orchestrator import get_analysis_orchestrator
from dreammapper.services.dream_store import get_dream_store
from dreammapper.utils.datetime_utils import parse_calendar_date

EXIT_PIPELINE_FAILED = 1
EXIT_USAGE = 2
EXIT_NOT_SAVED = 3


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_init_db(args):
    """Create tables."""
    init_db()
    print("Database initialized")
    return 0


def cmd_analyze(args):
    """Analyze one dream and save it."""
    try:
        dream_date = parse_calendar_date(args.date)
    except ValueError:
        print(f"Invalid date: {args.date}", file=sys.stderr)
        return EXIT_USAGE

    init_db()
    request = AnalysisRequest(
        title=(args.title or "").strip(),
        text=args.text.strip(),
        date=dream_date,
        location_id=args.place,
    )
    try:
        record = asyncio.run(get_analysis_orchestrator().submit(request))
    except PersistenceError as e:
        print(f"Analysis finished but was not saved: {e.message}", file=sys.stderr)
        if e.record is not None:
            _print_json(e.record.to_response())
        return EXIT_NOT_SAVED
    except DreamAnalysisError as e:
        print(f"Analysis failed ({e.code}): {e.message}", file=sys.stderr)
        return EXIT_PIPELINE_FAILED

    _print_json(record.to_response())
    return 0


def cmd_list(args):
    """List saved dreams, newest first."""
    init_db()
    records = get_dream_store().list_recent(args.limit)
    if not records:
        print("No saved dreams")
        return 0
    for record in records:
        print(f"{record.id}  {record.created_at:%Y-%m-%d %H:%M}  {record.moon_phase:<16}  {record.title}")
    return 0


def cmd_show(args):
    """Print one saved dream as JSON."""
    init_db()
    try:
        record = get_dream_store().get(args.id)
    except DreamNotFound as e:
        print(e.message, file=sys.stderr)
        return 1
    _print_json(record.to_response())
    return 0


def cmd_delete(args):
    """Delete one saved dream."""
    init_db()
    try:
        get_dream_store().delete(args.id)
    except DreamNotFound as e:
        print(e.message, file=sys.stderr)
        return 1
    print(f"Deleted {args.id}")
    return 0


def cmd_purge(args):
    """Delete all saved dreams."""
    if not args.yes:
        print("Refusing to delete all dreams without --yes", file=sys.stderr)
        return EXIT_USAGE
    init_db()
    deleted = get_dream_store().delete_all()
    print(f"Deleted {deleted} dreams")
    return 0


def cmd_ping_models(args):
    """Check that Ollama answers and list its models."""
    client = get_ollama_client()
    try:
        models = asyncio.run(client.list_models())
    except InferenceUnavailable as e:
        print(f"Could not reach Ollama at {client.base_url}\n{e.message}", file=sys.stderr)
        return 1
    print(f"Ollama is reachable\nModels: {', '.join(models)}")
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="dreams")
    sub = p.add_subparsers(dest="cmd")
    s = sub.add_parser("init-db", help="Create database tables")
    s.set_defaults(func=cmd_init_db)
    s = sub.add_parser("analyze", help="Analyze a dream and save it")
    s.add_argument("--title", "-t", default="", help="Dream title")
    s.add_argument("--text", required=True, help="Dream narrative")
    s.add_argument("--date", "-d", help="Dream date (YYYY-MM-DD), defaults to today")
    s.add_argument("--place", "-p", help="Astronomy location id, e.g. norway/oslo")
    s.set_defaults(func=cmd_analyze)
    s = sub.add_parser("list", help="List saved dreams")
    s.add_argument("--limit", "-n", type=int, default=None)
    s.set_defaults(func=cmd_list)
    s = sub.add_parser("show", help="Show one saved dream")
    s.add_argument("id", type=UUID)
    s.set_defaults(func=cmd_show)
    s = sub.add_parser("delete", help="Delete one saved dream")
    s.add_argument("id", type=UUID)
    s.set_defaults(func=cmd_delete)
    s = sub.add_parser("purge", help="Delete all saved dreams")
    s.add_argument("--yes", action="store_true", help="Confirm deletion")
    s.set_defaults(func=cmd_purge)
    s = sub.add_parser("ping-models", help="Check Ollama connectivity")
    s.set_defaults(func=cmd_ping_models)
    return p


def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    if not hasattr(args, "func"):
        p.print_help()
        return EXIT_USAGE
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
