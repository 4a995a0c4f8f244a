#!/usr/bin/env python3
"""
bangrouter - Main entry point for python -m bangrouter
"""

from bangrouter.cli import main

if __name__ == "__main__":
    main(prog_name="bangrouter")
