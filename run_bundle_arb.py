#!/usr/bin/env python3
"""
Flash loan bundle searcher runner.
"""
from bundle_arb.cli import main

if __name__ == "__main__":
    main()
