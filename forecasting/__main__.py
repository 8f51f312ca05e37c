"""Allow ``python -m forecasting <command>``."""

from forecasting.cli import main

main()
