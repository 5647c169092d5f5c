"""Allow ``python -m mlsync``."""

from mlsync.ui.cli.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
