"""
Fleet leasing back office - rent schedule and late-fee accrual engine
"""

__version__ = "1.0.0"
