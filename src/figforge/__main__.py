"""Allow ``python -m figforge``."""

from figforge.cli import app

app()
