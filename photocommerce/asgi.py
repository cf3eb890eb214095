"""
ASGI entrypoint: expose `app` pour les process managers / déploiements
(ex: uvicorn photocommerce.asgi:app).
"""
import logging
from photocommerce.app_setup.factory import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

app = create_app()
