"""Hybrid AI Router: multi-provider request routing and orchestration"""

__version__ = "1.0.0"
