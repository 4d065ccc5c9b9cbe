"""Allow ``python -m acmedrive``."""

from acmedrive.cli.main import main

main()
