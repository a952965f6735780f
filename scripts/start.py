#!/usr/bin/env python3
"""
Create missing tables, then exec gunicorn on app.wsgi:app.

    PORT=8080 python scripts/start.py

Workers fork from a preloaded app; create_app disposes the inherited engine in
each child.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _port() -> str:
    raw = (os.environ.get("PORT") or "8080").strip()
    if not raw.isdecimal() or not 1 <= int(raw) <= 65535:
        sys.exit(f"Invalid PORT {raw!r}; expected 1-65535.")
    return raw


def main() -> None:
    port = _port()

    from scripts.init_db import create_tables

    create_tables()

    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    os.execvp(
        "gunicorn",
        ["gunicorn", "app.wsgi:app", "--bind", f"0.0.0.0:{port}", "--workers", workers, "--preload",
         "--access-logfile", "-", "--error-logfile", "-"],
    )


if __name__ == "__main__":
    main()
