# -*- coding: utf-8 -*-
"""
The 'core' package holds the cross-cutting pieces shared by the scanner and
the API: configuration, logging setup and the error hierarchy.
"""
