"""
Analysis module - engine, worker and pipelines.

- engine.py    - feature extraction (runs in the worker process)
- worker/      - worker process, transport and host-side channel
- pipelines/   - dataset, decoder and batch processor
- service.py   - composition root
"""

from .engine import AnalysisEngine, estimate_structure, synthetic_analysis
from .service import AnalysisService, create_analysis_service

__all__ = [
    'AnalysisEngine',
    'estimate_structure',
    'synthetic_analysis',
    'AnalysisService',
    'create_analysis_service',
]
