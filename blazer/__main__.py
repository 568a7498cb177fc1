"""Entry point for ``python -m blazer``."""

from blazer.main import main

raise SystemExit(main())
