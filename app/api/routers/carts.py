#app/api/routers/carts.py
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response

from app.domain.cart import MIN_ID, MAX_ID

from app.domain.errors import (
    CartError,
    CartCancelled,
    CartNotFound,
    CartValidationError,
)
from app.domain.schemas import CreateCartIn, ItemIn, CartOut
from app.services.cart_service import CartService
from app.utils.deadline import Deadline
from app.utils.settings import REQUEST_TIMEOUT_SECONDS

router = APIRouter(prefix="/carts", tags=["carts"])

CartID = Annotated[int, Path(ge=MIN_ID, le=MAX_ID)]
ProductID = Annotated[int, Path(ge=MIN_ID, le=MAX_ID)]


def get_service(request: Request) -> CartService:
    return request.app.state.cart_service


def get_deadline() -> Deadline:
    return Deadline(REQUEST_TIMEOUT_SECONDS)


def _http_error(e: CartError) -> HTTPException:
    if isinstance(e, CartNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CartValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, CartCancelled):
        return HTTPException(status_code=504, detail=str(e))
    return HTTPException(status_code=500, detail=f"Blad wewnetrzny: {e}")


@router.post("/", response_model=CartOut, status_code=201)
def create_cart(
    payload: CreateCartIn,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        cart = svc.create(payload.user_id, deadline)
    except CartError as e:
        raise _http_error(e)
    return CartOut.from_cart(cart)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: CartID,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        cart = svc.get(cart_id, deadline)
    except CartError as e:
        raise _http_error(e)
    return CartOut.from_cart(cart)


@router.delete("/{cart_id}", status_code=204)
def delete_cart(
    cart_id: CartID,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        svc.delete(cart_id, deadline)
    except CartError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.post("/{cart_id}/items", status_code=204)
def add_item(
    cart_id: CartID,
    payload: ItemIn,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        svc.add_product(cart_id, payload.product_id, payload.quantity, deadline)
    except CartError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.delete("/{cart_id}/items/{product_id}", status_code=204)
def remove_item(
    cart_id: CartID,
    product_id: ProductID,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        svc.delete_product(cart_id, product_id, deadline)
    except CartError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.delete("/{cart_id}/items", status_code=204)
def empty_cart(
    cart_id: CartID,
    svc: CartService = Depends(get_service),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        svc.empty(cart_id, deadline)
    except CartError as e:
        raise _http_error(e)
    return Response(status_code=204)
