# -*- coding: utf-8 -*-
"""
The 'reconnaissance' package contains the TCP connect scanner: the single-port
probe, the static service catalog, the bounded concurrent scan coordinator and
the JSON scan report, plus the `tcp_connect_scan` command-line front-end.

These tools simulate the service-enumeration phase of an attack, mapping to
MITRE ATT&CK T1046 (Network Service Discovery).
"""
