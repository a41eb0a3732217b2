#!/usr/bin/env python3
"""
Application Entry Point.

Launch the Patient Health System with:
    python patient_app.py

Configuration comes from ./.medrecords.json and MEDRECORDS_* environment
variables; see ``medrecords config-show``.
"""

import sys

import typer

from medrecords.cli.main import launch


def main():
    """Launch the interactive session."""
    try:
        launch()
    except typer.Exit as e:
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
