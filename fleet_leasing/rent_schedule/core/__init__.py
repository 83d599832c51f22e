"""
Engine core: models, accrual policies, lease reader, run orchestration
"""
