# -*- coding: utf-8 -*-
"""
netsec_scanner: a concurrent TCP connect scanner with service identification,
heuristic vulnerability annotation and structured JSON reporting.

Intended for authorized security testing and educational use only.
"""

__version__ = "1.0.0"
