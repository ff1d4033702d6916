"""
Pipelines - dataset in, analyzed records out.

- dataset.py         - local directory → AudioFileRecord list
- decoder.py         - AudioFileRecord → mono signal
- batch_processor.py - incremental cache/worker-driven processing
"""

from .batch_processor import BatchProcessor, BatchResult, ProcessingStatus
from .dataset import load_local_dataset
from .decoder import AudioDecoder

__all__ = [
    'BatchProcessor',
    'BatchResult',
    'ProcessingStatus',
    'load_local_dataset',
    'AudioDecoder',
]
