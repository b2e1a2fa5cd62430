#!/usr/bin/env python3
"""
Historiador - Jira Batch Importer

Runs the importer from a source checkout without installing it.

Usage:
    python3 execute.py process -p PROJ
    python3 execute.py process -f entrada/stories.csv --dry-run
    python3 execute.py validate -f entrada/stories.xlsx -p PROJ
    python3 execute.py test-connection
    python3 execute.py diagnose -p PROJ
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from historiador.cli import main


if __name__ == "__main__":
    sys.exit(main())
