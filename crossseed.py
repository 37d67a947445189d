#!/usr/bin/env python3
"""
Convenience shim to run CrossSeed from a source checkout.
Usage: python crossseed.py [--verify|--help|--config PATH]
"""

from crossseed.cli import main


if __name__ == "__main__":
    main()
