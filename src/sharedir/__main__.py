"""Enables ``python -m sharedir PATH``."""

from __future__ import annotations

from sharedir.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
