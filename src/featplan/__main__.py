"""Allow `python -m featplan`."""

from .cli import main

main()
