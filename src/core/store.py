"""JSON-file record store for the local vacancy list.

All reads and writes of the in-memory list go through one lock. Readers
take a snapshot (a shallow copy of the list; vacancies are frozen) and work
on it without holding the lock. Every mutation schedules a save on a
single background writer thread, so disk I/O never blocks the caller.
"""

import json
import logging
import shutil
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.core.errors import DuplicateVacancyError, VacancyNotFoundError
from src.core.schemas import ExperienceLevel, Status, Vacancy, identity_key

logger = logging.getLogger(__name__)

_VACANCY_LIST = TypeAdapter(list[Vacancy])

EXAMPLE_VACANCIES: tuple[Vacancy, ...] = (
    Vacancy(
        title="Go Developer (example)",
        company="Tech Solutions",
        description="Looking for an experienced Go developer.",
        keywords=["golang", "backend"],
        experience_level=ExperienceLevel.THREE_TO_SIX,
        notes="Interesting role, flexible hours.",
    ),
    Vacancy(
        title="Frontend Developer (example)",
        company="Web Innovators",
        description="Looking for a frontend developer.",
        keywords=["javascript", "react"],
        experience_level=ExperienceLevel.ONE_TO_THREE,
        notes="Portfolio required.",
    ),
    Vacancy(
        title="Junior QA Engineer (example)",
        company="QA Experts",
        description="Looking for an entry-level tester.",
        keywords=["qa", "testing"],
        status=Status.PLANNING,
        experience_level=ExperienceLevel.NONE,
        notes="Apply before the end of the week.",
    ),
)


class VacancyStore:
    """Ordered collection of vacancies, unique by case-insensitive (title, company).

    Usage::

        store = VacancyStore("data/vacancies.json")
        store.load()
        view = store.snapshot()
        store.add(Vacancy(title="QA", company="Acme"))
        store.close()   # waits for pending saves
    """

    def __init__(self, path: str | Path, *, seed_examples: bool = True) -> None:
        self._path = Path(path)
        self._seed_examples = seed_examples
        self._lock = threading.Lock()
        self._items: list[Vacancy] = []
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vacancy-store")
        self._pending: Future[None] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> int:
        """Load vacancies from disk. Returns the number loaded.

        A missing file is created with example vacancies (when seeding is on).
        Invalid records are skipped; an unreadable or malformed file leaves
        the store empty. In both cases the file is first copied to
        ``<name>.bak`` so the next save cannot destroy the skipped data.
        """
        if not self._path.exists():
            logger.info("Vacancy file %s not found, creating it", self._path)
            with self._lock:
                self._items = list(EXAMPLE_VACANCIES) if self._seed_examples else []
                self._schedule_save_locked()
                return len(self._items)

        try:
            raw = json.loads(self._path.read_bytes())
        except (OSError, ValueError) as e:
            logger.error("Failed to read vacancies from %s: %s", self._path, e)
            raw = None
        else:
            if not isinstance(raw, list):
                logger.error("Vacancy file %s does not hold a JSON list", self._path)
                raw = None

        if raw is None:
            items: list[Vacancy] = []
            self._back_up()
        else:
            items = _valid_records(raw)
            if len(items) < len(raw):
                self._back_up()

        with self._lock:
            self._items = _drop_duplicate_keys(items)
            count = len(self._items)
        logger.info("Loaded %d vacancies from %s", count, self._path)
        return count

    def snapshot(self) -> list[Vacancy]:
        """Return a lock-consistent copy of the current vacancy list."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def find(self, title: str, company: str) -> Vacancy | None:
        with self._lock:
            index = self._index_locked(identity_key(title, company))
            return None if index is None else self._items[index]

    def add(self, vacancy: Vacancy) -> None:
        """Append a new vacancy. Raises DuplicateVacancyError if its key exists."""
        with self._lock:
            if self._index_locked(vacancy.key) is not None:
                raise DuplicateVacancyError(vacancy.title, vacancy.company)
            self._items.append(vacancy)
            self._schedule_save_locked()
        logger.info("Added vacancy '%s' (%s)", vacancy.title, vacancy.company)

    def update(self, title: str, company: str, vacancy: Vacancy) -> None:
        """Replace the vacancy keyed by (title, company), keeping its position.

        The replacement may change title or company, but not to a key that
        belongs to another vacancy.
        """
        with self._lock:
            index = self._index_locked(identity_key(title, company))
            if index is None:
                raise VacancyNotFoundError(title, company)
            other = self._index_locked(vacancy.key)
            if other is not None and other != index:
                raise DuplicateVacancyError(vacancy.title, vacancy.company)
            self._items[index] = vacancy
            self._schedule_save_locked()
        logger.info("Updated vacancy '%s' (%s)", vacancy.title, vacancy.company)

    def upsert(self, vacancy: Vacancy) -> bool:
        """Insert or replace by key. Returns True if a new vacancy was added."""
        with self._lock:
            index = self._index_locked(vacancy.key)
            if index is None:
                self._items.append(vacancy)
            else:
                self._items[index] = vacancy
            self._schedule_save_locked()
        return index is None

    def delete(self, title: str, company: str) -> Vacancy:
        """Remove and return the vacancy keyed by (title, company)."""
        with self._lock:
            index = self._index_locked(identity_key(title, company))
            if index is None:
                raise VacancyNotFoundError(title, company)
            removed = self._items.pop(index)
            self._schedule_save_locked()
        logger.info("Deleted vacancy '%s' (%s)", removed.title, removed.company)
        return removed

    def flush(self) -> None:
        """Block until every scheduled save has been written."""
        with self._lock:
            pending = self._pending
        if pending is not None:
            pending.result()

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._writer.shutdown(wait=True)

    def _back_up(self) -> None:
        backup = self._path.with_suffix(self._path.suffix + ".bak")
        try:
            shutil.copy2(self._path, backup)
        except OSError as e:
            logger.error("Failed to back up %s: %s", self._path, e)
            return
        logger.warning("Copied %s to %s before dropping unreadable data", self._path, backup)

    def _index_locked(self, key: tuple[str, str]) -> int | None:
        for i, v in enumerate(self._items):
            if v.key == key:
                return i
        return None

    def _schedule_save_locked(self) -> None:
        # Serialize under the lock so the written file matches this exact state.
        payload = _VACANCY_LIST.dump_json(self._items, by_alias=True, indent=2)
        self._pending = self._writer.submit(self._write, payload)

    def _write(self, payload: bytes) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_bytes(payload)
            tmp.replace(self._path)
        except OSError as e:
            logger.error("Failed to write vacancies to %s: %s", self._path, e)
            raise
        logger.debug("Saved vacancies to %s", self._path)


def _valid_records(raw: list[Any]) -> list[Vacancy]:
    out: list[Vacancy] = []
    for i, record in enumerate(raw):
        try:
            out.append(Vacancy.model_validate(record))
        except ValidationError as e:
            logger.warning("Skipping invalid vacancy record #%d: %s", i, e.errors()[0]["msg"])
    return out


def _drop_duplicate_keys(items: list[Vacancy]) -> list[Vacancy]:
    seen: set[tuple[str, str]] = set()
    out: list[Vacancy] = []
    for v in items:
        if v.key in seen:
            logger.warning("Dropping duplicate vacancy '%s' (%s)", v.title, v.company)
            continue
        seen.add(v.key)
        out.append(v)
    return out


def export_vacancies_json(vacancies: list[Vacancy]) -> str:
    """Serialize vacancies as a JSON string in the on-disk format."""
    return json.dumps(
        [v.model_dump(mode="json", by_alias=True) for v in vacancies],
        indent=2,
        ensure_ascii=False,
    )
