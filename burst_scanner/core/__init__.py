"""
Core error types
"""
