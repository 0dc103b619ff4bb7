"""Module entrypoint for running speechmap as ``python -m speechmap``."""

from __future__ import annotations

from speechmap.cli import main


if __name__ == "__main__":
    main()
