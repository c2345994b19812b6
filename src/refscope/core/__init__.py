"""Core domain package for refscope.

Core contains hostname decomposition, rule storage and referrer matching
without any file loading or CLI code, keeping the business logic portable.
"""
