"""
Technical indicator calculators
"""
