"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `bakery.asgi:app`.
- Toute la configuration de FastAPI est centralisée dans bakery.app_setup.factory,
  ce fichier ne fait qu'exposer l'instance `app`.
"""

from bakery.app import app
