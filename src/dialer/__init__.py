# -*- coding: utf-8 -*-
"""
The 'dialer' package opens outbound TCP connections.

It resolves a host/port pair into every candidate address the system resolver
returns, connects to the first one that accepts, and reports failures through
a small, stable error taxonomy.
"""
