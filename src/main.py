"""Run script.

Why it exists:
- Runs the CLI with `python -m main` during development.
- Keeps a simple entrypoint next to the `cms-client` console script.
"""

from __future__ import annotations

import sys

# Rich output on Windows terminals defaulting to cp1252.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
