"""
Schedule generation and late-fee steps
"""
