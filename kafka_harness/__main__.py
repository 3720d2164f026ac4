#!/usr/bin/env python3
"""
Main entry point for the Kafka harness when run as a module.

This allows the package to be executed with: python -m kafka_harness
"""

from .cli import main

if __name__ == '__main__':
    main()
