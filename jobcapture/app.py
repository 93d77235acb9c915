import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .capture import (
    CaptureResponse,
    capture_from_email,
    capture_from_extension,
    capture_from_url,
    check_duplicate,
    import_job_json,
    preview_capture,
)
from .config import Settings, get_settings, load_env
from .database import init_database
from .logger import get_logger
from .storage import RecordStore, job_summary


def _read_text(path: str) -> str:
    input_path = Path(path)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    return input_path.read_text(encoding="utf-8")


def _read_json(path: str) -> dict:
    text = _read_text(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON in {path}: {e.msg} (line {e.lineno})")


def _open_store(settings: Settings) -> RecordStore:
    init_database(settings.db_path)
    return RecordStore.open(settings.db_path)


def _emit(response: CaptureResponse) -> int:
    print(json.dumps({"status": response.status_code, **response.body}, indent=2, default=str))
    return 0 if response.ok else 1


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> int:
    store = _open_store(settings)
    try:
        added = store.seed_defaults()
    finally:
        store.close()
    print(f"Database ready: {settings.db_path}")
    print(f"Statuses added: {added}")
    return 0


def cmd_capture_url(args: argparse.Namespace, settings: Settings) -> int:
    data = {"url": args.url}
    if args.no_scrape:
        data["scrapedData"] = {"url": args.url}
    store = _open_store(settings)
    try:
        return _emit(capture_from_url(data, settings.user_id, store, settings))
    finally:
        store.close()


def cmd_capture(args: argparse.Namespace, settings: Settings) -> int:
    data = _read_json(args.input)
    store = _open_store(settings)
    try:
        return _emit(capture_from_extension(data, settings.user_id, store, settings))
    finally:
        store.close()


def cmd_ingest_email(args: argparse.Namespace, settings: Settings) -> int:
    data = {"emailBody": _read_text(args.body_file)}
    if args.subject:
        data["emailSubject"] = args.subject
    if args.sender:
        data["fromAddress"] = args.sender
    store = _open_store(settings)
    try:
        return _emit(capture_from_email(data, settings.user_id, store, settings))
    finally:
        store.close()


def cmd_preview(args: argparse.Namespace, settings: Settings) -> int:
    return _emit(preview_capture(args.url, settings.user_id, settings))


def cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    payload = _read_text(args.input)
    store = _open_store(settings)
    try:
        return _emit(import_job_json(payload, settings.user_id, store, settings))
    finally:
        store.close()


def cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    store = _open_store(settings)
    try:
        return _emit(check_duplicate(args.company, args.title, args.url, settings.user_id, store, settings))
    finally:
        store.close()


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.user_id:
        print("JOBCAPTURE_USER_ID not set. Set env var or pass --user.")
        return 1
    store = _open_store(settings)
    try:
        jobs = store.list_jobs(settings.user_id)
        if not jobs:
            print("No jobs captured.")
            return 0
        print(f"Found {len(jobs)} jobs in {settings.db_path}:\n")
        for job in jobs:
            summary = job_summary(job)
            print(f"ID: {summary['id']}")
            print(f"  Company: {summary['company']}")
            print(f"  Title: {summary['title']}")
            print(f"  Location: {summary['location']}")
            print(f"  URL: {summary['jobUrl']}")
            print(f"  Source: {summary['source']}")
            print(f"  Status: {summary['status']}")
            print()
    finally:
        store.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobcapture", description="Capture job postings and skip duplicates")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite database (or set JOBCAPTURE_DB_PATH)")
    parser.add_argument("--user", help="Acting user id (or set JOBCAPTURE_USER_ID)")

    subparsers = parser.add_subparsers(dest="command")
    init = subparsers.add_parser("init-db", help="Create tables and seed the default job statuses")
    init.set_defaults(func=cmd_init_db)

    url = subparsers.add_parser("capture-url", help="Scrape a job page URL and capture it")
    url.add_argument("--url", required=True, help="Job posting URL")
    url.add_argument("--no-scrape", action="store_true", help="Capture the URL without fetching the page")
    url.set_defaults(func=cmd_capture_url)

    cap = subparsers.add_parser("capture", help="Capture structured job fields from a JSON file")
    cap.add_argument("--input", required=True, help="Path to JSON with jobTitle, company and optional fields")
    cap.set_defaults(func=cmd_capture)

    ing = subparsers.add_parser("ingest-email", help="Parse a job alert email and capture it")
    ing.add_argument("--body-file", required=True, help="Path to the email body (text or HTML)")
    ing.add_argument("--subject", help="Email subject line")
    ing.add_argument("--from", dest="sender", help="Sender email address")
    ing.set_defaults(func=cmd_ingest_email)

    prv = subparsers.add_parser("preview", help="Show what would be captured from a URL without saving")
    prv.add_argument("--url", required=True, help="Job posting URL")
    prv.set_defaults(func=cmd_preview)

    imp = subparsers.add_parser("import", help="Import a job from a JSON document")
    imp.add_argument("--input", required=True, help="Path to JSON with title, company and optional fields")
    imp.set_defaults(func=cmd_import)

    chk = subparsers.add_parser("check", help="List existing jobs a posting would duplicate")
    chk.add_argument("--company", required=True, help="Company name")
    chk.add_argument("--title", required=True, help="Job title")
    chk.add_argument("--url", help="Job posting URL")
    chk.set_defaults(func=cmd_check)

    lst = subparsers.add_parser("list", help="List captured jobs for the acting user")
    lst.set_defaults(func=cmd_list)
    return parser


def main(argv=None) -> int:
    # Load .env if present (JOBCAPTURE_DB_PATH, JOBCAPTURE_USER_ID, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    settings = get_settings()
    if args.db:
        settings.db_path = Path(args.db)
    if args.user:
        settings.user_id = args.user

    if hasattr(args, "func"):
        code = args.func(args, settings)
        get_logger().log_metrics_summary()
        return code

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
