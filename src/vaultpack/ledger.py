"""Append-only export ledger for vaultpack.

Each export run appends its plan, every filtered file and the write summary
to ``<vault>/.vaultpack/ledger.jsonl``, all sharing one ``run_id``.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from rich.console import Console

from .models.ledger import EventType, LedgerEvent

console = Console(stderr=True)


class LedgerWriter:
    """Appends the events of one export run.

    The file is only ever appended to, never truncated.
    """

    def __init__(self, ledger_path: Path, run_id: Optional[str] = None):
        self.ledger_path = ledger_path
        self.run_id = run_id or str(uuid.uuid4())

    def append_event(
        self,
        event_type: EventType,
        payload: dict,
        root_path: Optional[str] = None,
    ) -> LedgerEvent:
        """Write one event and return it.

        Args:
            event_type: EXPORT_PLANNED, FILE_FILTERED or EXPORT_WRITTEN
            payload: Event-specific data
            root_path: Vault path of the note being exported
        """
        event = LedgerEvent(
            event_id=str(uuid.uuid4()),
            run_id=self.run_id,
            ts=datetime.now(timezone.utc),
            event_type=event_type,
            root_path=root_path,
            payload=payload,
        )

        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ledger_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event.model_dump(mode="json")) + "\n")
        return event


def _iter_events(ledger_path: Path) -> Iterator[LedgerEvent]:
    malformed = 0
    with open(ledger_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield LedgerEvent(**json.loads(line))
            except (json.JSONDecodeError, ValueError) as e:
                malformed += 1
                console.print(f"[yellow]Warning: Skipping malformed line: {e}[/yellow]")
    if malformed:
        console.print(f"[yellow]Skipped {malformed} malformed line(s)[/yellow]")


def read_ledger_tail(
    ledger_path: Path,
    n: int = 20,
    *,
    run_id: Optional[str] = None,
    root_path: Optional[str] = None,
    last_run: bool = False,
) -> list[LedgerEvent]:
    """Return the last ``n`` matching events, oldest first.

    ``run_id`` and ``root_path`` narrow the events to one export run or one
    exported note. ``last_run`` narrows them to the most recent run among the
    remaining events. Malformed lines are skipped with a warning.
    """
    if n <= 0 or not ledger_path.exists():
        return []

    events = [
        e
        for e in _iter_events(ledger_path)
        if (run_id is None or e.run_id == run_id)
        and (root_path is None or e.root_path == root_path)
    ]
    if last_run and events:
        latest = events[-1].run_id
        events = [e for e in events if e.run_id == latest]
    return events[-n:]
