"""Entry point for ``python -m cfrok``."""

from cfrok.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
