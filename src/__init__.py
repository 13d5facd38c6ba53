"""
Sprout health data engine.
"""
