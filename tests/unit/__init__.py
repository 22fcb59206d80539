"""
Unit tests for retrykit.

Test individual components in isolation:
- Delay strategies (leaf values, overflow guard, combinators)
- Stop strategies (attempts, timeout, deadline, any/all)
- Retrier state machine (success, sentinel stop, exhaustion, async)
- HTTP client classification over a mock transport
- Settings and logging configuration
"""
