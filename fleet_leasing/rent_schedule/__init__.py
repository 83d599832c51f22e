"""
Rent schedule engine
"""
