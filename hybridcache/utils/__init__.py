"""
Utils package initialization.
Import semua utilities di sini agar mudah diakses.
"""

from .config import Config, CacheConfig
from .log import setup_logging
from .metrics import metrics, measure_time

__all__ = ['Config', 'CacheConfig', 'setup_logging', 'metrics', 'measure_time']
