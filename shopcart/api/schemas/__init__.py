"""
Request schemas.
"""
