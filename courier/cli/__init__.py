"""
Command-line interface for Courier.
"""
