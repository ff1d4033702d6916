"""
Core - Application infrastructure.

- config/      - Settings and factory functions
- interfaces/  - Protocols for DI
- connectors/  - Storage implementations (file, SQLite, memory)
- cache/       - Analysis cache (versioned store with eviction)
- monitoring/  - Prometheus metrics
- errors.py    - Exception hierarchy
"""
