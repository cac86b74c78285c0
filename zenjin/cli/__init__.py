"""
Command-line interface for the Zenjin engine.

Entry point: ``zenjin = zenjin.cli.main:main``.
"""
