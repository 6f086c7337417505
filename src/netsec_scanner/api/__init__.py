# -*- coding: utf-8 -*-
"""
The 'api' package exposes the scanner over HTTP so the dashboard can request
scans and render their results.
"""
