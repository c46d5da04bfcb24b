"""Service layer for certificate rendering.

Services orchestrate the rendering modules and the template store, keeping
routes thin and focused on HTTP handling.

Layer hierarchy:
    Routes (HTTP) -> Services (orchestration) -> Rendering / Core (cache, HTTP)

Services should:
- Own the order of pipeline stages and their failure semantics
- Run CPU-bound rendering off the event loop
- Raise CertificateServiceError subclasses, never HTTP errors

Services should NOT:
- Know about HTTP request/response details
- Choose status codes (main.py maps errors to responses)
"""
