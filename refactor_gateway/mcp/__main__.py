#!/usr/bin/env python3
"""Entry point for `python -m refactor_gateway.mcp`."""

from . import main

main()
