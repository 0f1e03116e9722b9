"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Core components for Courier.

This package contains the dispatcher and the pieces it orchestrates:
- target.py: API target descriptors
- reachability.py: reachability gate and monitors
- progress.py: loading-indicator rules
- audit.py / records.py: request audit trail
- classifier.py: transport error classification
- decoding.py: typed response decoding
- dispatcher.py: the request dispatcher
- factory.py: composition from configuration
"""
