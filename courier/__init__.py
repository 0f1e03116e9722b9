"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Courier - Outbound request dispatcher for typed REST API targets.

Courier gates calls on reachability, decodes responses into typed shapes,
drives loading indicators, writes an audit trail for every request and routes
transport, decode and authentication failures to the right collaborators.
"""

from courier._version import __version__

__all__ = ["__version__"]
