"""CLI entry point for the vacancy tracker."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import yaml

from src.core.config import Settings, write_default_settings
from src.core.errors import DuplicateVacancyError, VacancyTrackerError
from src.core.schemas import (
    ExperienceLevel,
    ResultsOutcome,
    SearchField,
    SearchOutcome,
    SearchQuery,
    SortColumn,
    SortOrder,
    Status,
    Vacancy,
    parse_keywords,
)
from src.core.store import VacancyStore, export_vacancies_json
from src.pipeline.matcher import filter_vacancies
from src.pipeline.orchestrator import SearchOrchestrator, describe_outcome
from src.platforms.jooble.client import JoobleClient

logger = logging.getLogger(__name__)

_STATUS_CHOICES = [s.value for s in Status]
_EXPERIENCE_CHOICES = [e.value for e in ExperienceLevel]


def _add_vacancy_fields(parser: argparse.ArgumentParser, *, required_title: bool) -> None:
    parser.add_argument("--title", required=required_title, help="Vacancy title")
    parser.add_argument("--company", help="Company name")
    parser.add_argument("--description", help="Description text")
    parser.add_argument("--keywords", help="Comma-separated keywords, e.g. 'go, backend'")
    parser.add_argument("--url", dest="source_url", help="Source URL")
    parser.add_argument("--status", help=f"One of: {', '.join(_STATUS_CHOICES)}")
    parser.add_argument("--experience", help=f"One of: {', '.join(_EXPERIENCE_CHOICES)}")
    parser.add_argument("--notes", help="Free-text notes")
    parser.add_argument("--resume", dest="resume_path", help="Path to the resume sent for this vacancy")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    parser = argparse.ArgumentParser(
        description="Vacancy tracker - keep a local list of job openings and search online",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- list subcommand (default) ---
    list_parser = subparsers.add_parser("list", parents=[common], help="Show local vacancies")
    list_parser.add_argument(
        "--field",
        default=SearchField.EVERYWHERE.value,
        choices=[f.value for f in SearchField],
        help="Where to search (default: everywhere)",
    )
    list_parser.add_argument("--query", "-q", default="", help="Text, status or experience to match")
    list_parser.add_argument(
        "--sort",
        default=SortColumn.TITLE.value,
        choices=[c.value for c in SortColumn],
        help="Sort column (default: title)",
    )
    list_parser.add_argument("--desc", action="store_true", help="Sort descending")
    list_parser.add_argument("--export", choices=["json"], help="Export matches to format (json)")

    # --- add / edit / delete ---
    add_parser = subparsers.add_parser("add", parents=[common], help="Add a vacancy")
    _add_vacancy_fields(add_parser, required_title=True)

    edit_parser = subparsers.add_parser("edit", parents=[common], help="Edit a vacancy")
    edit_parser.add_argument("match_title", metavar="TITLE", help="Current title")
    edit_parser.add_argument("match_company", metavar="COMPANY", help="Current company")
    _add_vacancy_fields(edit_parser, required_title=False)

    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a vacancy")
    delete_parser.add_argument("match_title", metavar="TITLE")
    delete_parser.add_argument("match_company", metavar="COMPANY")

    # --- online subcommand ---
    online_parser = subparsers.add_parser(
        "online",
        parents=[common],
        help="Search Jooble for vacancies not yet in the local list (Ctrl-C cancels)",
    )
    online_parser.add_argument("term", help="Search keywords")
    online_parser.add_argument("--location", help="Override the configured location")
    online_parser.add_argument(
        "--save",
        action="store_true",
        help="Add every new result to the local list",
    )
    online_parser.add_argument("--export", choices=["json"], help="Export results to format (json)")

    # --- resumes subcommand ---
    subparsers.add_parser("resumes", parents=[common], help="List vacancies with an attached resume")

    # --- init-config subcommand ---
    init_parser = subparsers.add_parser("init-config", parents=[common], help="Write a starter settings.yaml")
    init_parser.add_argument(
        "--output",
        default="config/settings.yaml",
        help="Output path for settings YAML (default: config/settings.yaml)",
    )

    args = parser.parse_args(argv)

    # Default to list when no subcommand given
    if args.command is None:
        args = list_parser.parse_args([], namespace=args)
        args.command = "list"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings from YAML, or defaults if the file does not exist."""
    if not Path(path).exists():
        logger.debug("Config file %s not found, using defaults", path)
        return Settings()
    return Settings.from_yaml(path)


def open_store(settings: Settings) -> VacancyStore:
    store = VacancyStore(settings.store.path, seed_examples=settings.store.seed_examples)
    store.load()
    return store


def print_vacancies(vacancies: list[Vacancy]) -> None:
    if not vacancies:
        print("No vacancies.")
        return
    for i, v in enumerate(vacancies, 1):
        company = v.company or "-"
        print(f"{i:3d}. {v.title} | {company} | {v.status.value} | {v.experience_level.value}")
        if v.keywords:
            print(f"     keywords: {', '.join(v.keywords)}")
        if v.source_url:
            print(f"     {v.source_url}")


def cmd_list(args: argparse.Namespace, store: VacancyStore) -> None:
    """Handle list subcommand."""
    query = SearchQuery(selector=SearchField(args.field), text=args.query)
    order = SortOrder.DESCENDING if args.desc else SortOrder.ASCENDING
    matches = filter_vacancies(store.snapshot(), query, SortColumn(args.sort), order)

    if args.export == "json":
        print(export_vacancies_json(matches))
        return
    print_vacancies(matches)
    print(f"\n{len(matches)} of {len(store)} vacancies shown.")


def _vacancy_updates(args: argparse.Namespace) -> dict[str, object]:
    updates: dict[str, object] = {}
    for name in ("title", "company", "description", "source_url", "notes", "resume_path"):
        value = getattr(args, name)
        if value is not None:
            updates[name] = value
    if args.resume_path is not None:
        updates["resume_file_name"] = Path(args.resume_path).name if args.resume_path else ""
    if args.keywords is not None:
        updates["keywords"] = parse_keywords(args.keywords)
    if args.status is not None:
        updates["status"] = args.status
    if args.experience is not None:
        updates["experience_level"] = args.experience
    return updates


def cmd_add(args: argparse.Namespace, store: VacancyStore) -> None:
    """Handle add subcommand."""
    vacancy = Vacancy.model_validate(_vacancy_updates(args))
    store.add(vacancy)
    print(f"Added '{vacancy.title}'.")


def cmd_edit(args: argparse.Namespace, store: VacancyStore) -> None:
    """Handle edit subcommand."""
    current = store.find(args.match_title, args.match_company)
    if current is None:
        msg = f"Vacancy '{args.match_title}' at '{args.match_company}' not found"
        raise ValueError(msg)

    updates = _vacancy_updates(args)
    if not updates:
        print("No changes to save.")
        return
    # Re-validate so enum labels and keywords are normalized.
    data = current.model_dump()
    data.update(updates)
    edited = Vacancy.model_validate(data)
    if edited == current:
        print("No changes to save.")
        return
    store.update(args.match_title, args.match_company, edited)
    print(f"Saved changes to '{edited.title}'.")


def cmd_delete(args: argparse.Namespace, store: VacancyStore) -> None:
    """Handle delete subcommand."""
    removed = store.delete(args.match_title, args.match_company)
    print(f"Deleted '{removed.title}'.")


def cmd_resumes(store: VacancyStore) -> None:
    """Handle resumes subcommand: the archive of attached resume files."""
    attached = [v for v in store.snapshot() if v.resume_path]
    if not attached:
        print("No resumes attached.")
        return
    for i, v in enumerate(attached, 1):
        file_name = v.resume_file_name or Path(v.resume_path).name
        print(f"{i:3d}. {file_name} | {v.title} | {v.company or '-'}")
        print(f"     {v.resume_path}")


async def run_online(
    args: argparse.Namespace,
    settings: Settings,
    store: VacancyStore,
) -> SearchOutcome:
    """Run one online search; SIGINT/SIGTERM cancel it."""
    api = settings.api
    if args.location is not None:
        api = api.model_copy(update={"location": args.location})
    api_key = api.resolve_api_key()
    if not api_key:
        msg = f"Jooble API key missing: set api.api_key in the config or {api.api_key_env}"
        raise ValueError(msg)

    def show(outcome: SearchOutcome) -> None:
        print(describe_outcome(args.term, outcome))

    orchestrator = SearchOrchestrator(JoobleClient(api, api_key=api_key), store, on_outcome=show)
    loop = asyncio.get_running_loop()

    print(f"Searching online for '{args.term}'... (Ctrl-C to cancel)")
    handle = orchestrator.start(args.term)
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.cancel)
        except NotImplementedError:
            # Windows event loops do not support signal handlers.
            logger.debug("Signal handler for %s not supported", sig)
    try:
        return await handle.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass


def cmd_online(args: argparse.Namespace, settings: Settings, store: VacancyStore) -> None:
    """Handle online subcommand."""
    outcome = asyncio.run(run_online(args, settings, store))
    if not isinstance(outcome, ResultsOutcome):
        return

    if args.export == "json":
        print(export_vacancies_json(outcome.vacancies))
    else:
        print_vacancies(outcome.vacancies)

    if args.save and outcome.vacancies:
        added = 0
        for v in outcome.vacancies:
            try:
                store.add(v)
                added += 1
            except DuplicateVacancyError:
                logger.info("'%s' was added locally meanwhile, skipping", v.title)
        print(f"Added {added} vacancies to the local list.")


def cmd_init_config(args: argparse.Namespace) -> None:
    """Handle init-config subcommand."""
    if Path(args.output).exists():
        msg = f"Refusing to overwrite existing file: {args.output}"
        raise FileExistsError(msg)
    write_default_settings(args.output)
    print(f"Settings written to {args.output}")
    print("Set api.api_key (or the JOOBLE_API_KEY variable) and then run: python main.py online TERM")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "init-config":
        try:
            cmd_init_config(args)
        except (FileExistsError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    store = open_store(settings)
    try:
        if args.command == "add":
            cmd_add(args, store)
        elif args.command == "edit":
            cmd_edit(args, store)
        elif args.command == "delete":
            cmd_delete(args, store)
        elif args.command == "resumes":
            cmd_resumes(store)
        elif args.command == "online":
            cmd_online(args, settings, store)
        else:
            cmd_list(args, store)
    except (VacancyTrackerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
