"""
Package entry point.

Allows running the application via:

    python -m questschedule

This simply forwards execution to questschedule.cli.main().
"""

from questschedule.cli import main

if __name__ == "__main__":
    main()
