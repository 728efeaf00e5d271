"""
Retention engine: store interfaces, policies, classification and cleanup.
"""
