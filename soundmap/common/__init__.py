"""
Common - Shared utilities and pure functions.

- logging/     - Structured logging configuration
- types.py     - Dataclasses shared across the pipeline
- primitives/  - Signal math (numpy, single librosa import point)
"""
