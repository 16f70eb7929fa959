#!/usr/bin/env python3
"""Trip companion entry point."""

from trip_companion.app import main

if __name__ == "__main__":
    main()
