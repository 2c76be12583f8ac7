"""
Test suite for the Performance Signal Engine.
"""
