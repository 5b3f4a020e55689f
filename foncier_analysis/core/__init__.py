"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants (CRS codes, tolerances, status labels)
- exceptions: Custom exception hierarchy and warning categories
- ingress: Boundary adapters for loose upstream payloads
"""
