"""
SoundMap - Analysis pipeline for canvas-positioned audio clips.

Clean Architecture structure:
- core/      - Application core (config, errors, cache, connectors, interfaces)
- common/    - Shared utilities (types, primitives, logging)
- modules/   - Business modules (analysis worker, batch pipelines)
"""

__version__ = "1.0.0"
