# app/main.py
import uvicorn

from app.api import create_app
from app.data.database import engine
from app.utils.settings import HTTP_HOST, HTTP_PORT, TLS_CERT, TLS_CERT_KEY
from app.utils.logging import get_logger

logger = get_logger(__name__)

app = create_app(engine)


def run():
    tls = {}
    if TLS_CERT and TLS_CERT_KEY:
        tls = {"ssl_certfile": TLS_CERT, "ssl_keyfile": TLS_CERT_KEY}
    else:
        logger.warning("TLS_CERT / TLS_CERT_KEY not set, serving plain HTTP")

    logger.info(f"HTTP listening on {HTTP_HOST}:{HTTP_PORT}")
    uvicorn.run(app, host=HTTP_HOST, port=HTTP_PORT, **tls)


if __name__ == "__main__":
    run()
