"""Lanzador de `poi-ingest` desde un checkout, sin instalar el paquete.

Uso: `python main.py ingest sugerencias.json` o `python main.py doctor run`.
Con `pip install -e .` el script `poi-ingest` hace lo mismo.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Windows consoles default to cp1252; place names carry č, ć, š, ž, đ.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
