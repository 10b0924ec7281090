#!/usr/bin/env python3
"""
Parameter Harvester - Main Entry Point

Usage:
  python scripts/run_harvest.py -d example.com
  python scripts/run_harvest.py -l domains.txt -f json -o results.json
"""

import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from param_harvester.cli import main


if __name__ == '__main__':
    sys.exit(main())
