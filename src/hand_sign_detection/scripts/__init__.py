"""
Command line entry points.
"""
