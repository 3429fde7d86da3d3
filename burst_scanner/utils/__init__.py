"""
Configuration, logging and symbol utilities
"""
