"""
Canvas Refine: image refinement service for host image editors.

Takes a flattened canvas, submits it to a remote image-edit API together with an
instruction prompt, and hands the result back as a new layer:
- Rate-limit aware retry with server Retry-After hints and exponential backoff
- Size fallback (adaptive "auto" first, fixed square second)
- Time-based progress estimation polled independently of the remote call

Architecture: FastAPI surface + session/job runner + retry engine + httpx client
"""

__version__ = "0.1.0"
