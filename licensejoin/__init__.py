"""
licensejoin package marker.
"""
