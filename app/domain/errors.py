# app/domain/errors.py
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    INTERNAL = "internal"
    CANCELLED = "cancelled"


class CartError(Exception):
    """Bazowy blad domeny koszyka. Rodzaj bledu niesie pole ``kind``."""

    kind = ErrorKind.INTERNAL


class CartNotFound(CartError):
    kind = ErrorKind.NOT_FOUND


class CartValidationError(CartError):
    kind = ErrorKind.VALIDATION


class CartInternalError(CartError):
    kind = ErrorKind.INTERNAL


class CartCancelled(CartError):
    kind = ErrorKind.CANCELLED


class TransientStoreError(CartInternalError):
    """Utrata polaczenia / baza zajeta; bezpieczne do ponowienia tylko przy odczycie."""


class RetryableConflict(CartInternalError):
    """Kolizja klucza (cart_id, product_id) przy rownoleglym insercie."""
