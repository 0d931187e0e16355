"""Allow ``python -m lexbrief.cli`` execution."""

from lexbrief.cli.ingest import main

main()
