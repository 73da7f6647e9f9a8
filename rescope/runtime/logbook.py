"""Run logbook and output hashing for rescope."""

from __future__ import annotations

from datetime import datetime, timezone
import difflib
import hashlib
import json
import sys

from ..constants import LOGBOOK_FILE
from .core import RunResult


def hash_text(text: str) -> str:
    """Compute the SHA-256 hex digest of a program or output text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_output(result: RunResult) -> str:
    return hash_text(result.text)


def diff_outputs(text_a: str, text_b: str, label_a: str = "a", label_b: str = "b") -> list[str]:
    """Unified diff between two output texts; empty when they are identical."""
    return list(
        difflib.unified_diff(
            text_a.splitlines(),
            text_b.splitlines(),
            fromfile=label_a,
            tofile=label_b,
            lineterm="",
        )
    )


def _logbook_path(path=None):
    if path is not None:
        return path
    runtime_mod = sys.modules.get("rescope.runtime")
    return getattr(runtime_mod, "LOGBOOK_FILE", LOGBOOK_FILE)


def build_run_entry(program, source: str, result: RunResult) -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "program": str(program),
        "source_hash": hash_text(source),
        "output_hash": hash_output(result),
        "steps": result.steps,
        "log_length": len(result.log),
        "first_log": result.log[0] if result.log else None,
        "last_log": result.log[-1] if result.log else None,
    }


def record_run(program, source: str, result: RunResult, logbook_path=None) -> dict:
    """Append this run's metadata to the logbook."""
    entry = build_run_entry(program, source, result)
    path = _logbook_path(logbook_path)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry) + "\n")

    print(f"  📜 Recorded run → {path}", file=sys.stderr)
    return entry


def read_logbook(limit: int = 10, logbook_path=None) -> list[dict]:
    path = _logbook_path(logbook_path)
    with open(path, "r", encoding="utf-8") as f:
        lines = f.readlines()
    return [json.loads(line) for line in lines[-limit:] if line.strip()]


def show_logbook(limit: int = 10, logbook_path=None) -> None:
    """Display recent logbook entries."""
    try:
        entries = read_logbook(limit, logbook_path)
    except FileNotFoundError:
        print("No logbook yet.")
        return

    print(f"\nrescope logbook — last {len(entries)} entries:")
    for e in reversed(entries):
        print(
            f"• {e['timestamp']}  {e['program']}  [{e['steps']} steps]  {e['output_hash'][:12]}…"
        )
        if e["first_log"] and e["last_log"]:
            print(f"    log: {e['first_log']} → {e['last_log']}")


__all__ = [
    "build_run_entry",
    "diff_outputs",
    "hash_output",
    "hash_text",
    "read_logbook",
    "record_run",
    "show_logbook",
]
