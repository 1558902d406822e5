"""
vaxstat package
===============

Weekly, age-stratified COVID-19 outcomes by vaccination status.

- The CLI entry point is in `vaxstat/cli.py`.
- The core engine (weekly reports, risk-ratio means) is in `vaxstat/engine.py`.
- Dataset loading is in `vaxstat/loader.py`.
"""

__version__ = '0.3.0'
