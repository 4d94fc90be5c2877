"""
Core infrastructure: settings, logging, exceptions, clock and middleware.
"""
