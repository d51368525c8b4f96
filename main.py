#!/usr/bin/env python3
"""
WaybackRecon - Endpoint reconnaissance from the Internet Archive

Main entry point for running from a source checkout.

Usage:
    python main.py example.com
    cat domains.txt | python main.py -o all.json
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from waybackrecon.cli import main


if __name__ == '__main__':
    main()
