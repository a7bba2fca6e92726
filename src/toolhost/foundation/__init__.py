"""Foundation - core building blocks for toolhost.

Contains: core abstractions, error handling, registry, config.
"""
