"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: uvicorn-workers) importe `catering.asgi:app`.
- Toute la configuration de FastAPI est centralisée dans catering.app_setup.factory.
"""

from catering.app import app
