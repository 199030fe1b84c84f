"""
Small helpers shared across layers: formatting and the circuit breaker.
"""
