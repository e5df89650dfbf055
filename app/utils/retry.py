# app/utils/retry.py
from requests import ConnectionError as RequestsConnectionError, Timeout
from sqlalchemy.exc import OperationalError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.domain.errors import RetryableConflict, TransientStoreError
from app.utils.settings import DB_RETRY_ATTEMPTS


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type((RequestsConnectionError, Timeout)),
    )


def db_retry():
    #tylko dla operacji tylko-do-odczytu i czekania na baze przy starcie
    return retry(
        reraise=True,
        stop=stop_after_attempt(DB_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((TransientStoreError, OperationalError)),
    )


def conflict_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(DB_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(RetryableConflict),
    )
