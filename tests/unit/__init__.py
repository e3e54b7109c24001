"""
Unit tests for Canvas Refine.

Test individual components in isolation:
- Data models (serialization, validation, constraints)
- Image client (multipart request, error mapping) on a mocked transport
- Retry engine (backoff, size fallback, exhaustion) on a virtual clock
- Progress monitor, ticker and completion signal
- Work folder and credential store
- Refine session and job registry
- API models, dependencies and error handlers
"""
