# laundry/main.py
from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from loguru import logger

from .accounts.gateway import AuthGateway
from .accounts.store import CredentialStore
from .config import Settings
from .errors import AppError, InvalidToken, Unauthenticated, ValidationError
from .log import configure_logging
from .models import LoginIn, PasswordIn, ProfileIn, SignupIn, StatusIn
from .ordering.service import OrderService
from .ordering.store import OrderStore
from .realtime import ConnectionHub, Notifier, RemoteRelay
from .storage import CollectionStorage, JsonFileStorage, MemoryStorage

router = APIRouter()


# -------------------
# Helpers
# -------------------
def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def get_gateway(request: Request) -> AuthGateway:
    return request.app.state.gateway


def get_orders(request: Request) -> OrderService:
    return request.app.state.orders


def require_user(
    authorization: Optional[str] = Header(default=None),
    gateway: AuthGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    return gateway.authenticate(_bearer_token(authorization))


# -------------------
# Health
# -------------------
@router.get("/")
def root():
    return {"ok": True, "service": "laundry-api"}


# -------------------
# Auth
# -------------------
@router.post("/api/auth/signup")
def signup(payload: SignupIn, gateway: AuthGateway = Depends(get_gateway)):
    logger.info("POST /api/auth/signup - Creating new user")
    user = gateway.signup(**payload.model_dump())
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "User registered successfully", "user": user},
    )


@router.post("/api/auth/login")
def login(payload: LoginIn, gateway: AuthGateway = Depends(get_gateway)):
    logger.info("POST /api/auth/login - User login attempt")
    user, token = gateway.login(payload.email, payload.password)
    return {"success": True, "message": "Login successful", "user": user, "token": token}


@router.post("/api/auth/logout")
def logout():
    # Tokens are stateless; the client drops its session.
    return {"success": True, "message": "Logout successful"}


@router.get("/api/auth/me")
def me(ident: Dict[str, Any] = Depends(require_user), gateway: AuthGateway = Depends(get_gateway)):
    return {"success": True, "user": gateway.get_profile(ident["id"])}


@router.put("/api/auth/profile")
def update_profile(
    payload: ProfileIn,
    ident: Dict[str, Any] = Depends(require_user),
    gateway: AuthGateway = Depends(get_gateway),
):
    user = gateway.update_profile(ident["id"], payload.model_dump(exclude_none=True))
    return {"success": True, "message": "Profile updated successfully", "user": user}


@router.put("/api/auth/password")
def change_password(
    payload: PasswordIn,
    ident: Dict[str, Any] = Depends(require_user),
    gateway: AuthGateway = Depends(get_gateway),
):
    gateway.change_password(ident["id"], payload.currentPassword, payload.newPassword)
    return {"success": True, "message": "Password changed successfully"}


# -------------------
# Users
# -------------------
@router.get("/api/users")
def list_users(_ident: Dict[str, Any] = Depends(require_user), gateway: AuthGateway = Depends(get_gateway)):
    return {"success": True, "users": gateway.list_users()}


@router.delete("/api/users/{user_id}")
def delete_user(
    user_id: str,
    _ident: Dict[str, Any] = Depends(require_user),
    gateway: AuthGateway = Depends(get_gateway),
):
    gateway.delete_account(user_id)
    return {"success": True, "message": "User deleted successfully"}


# -------------------
# Orders
# -------------------
@router.get("/api/orders")
def list_orders(orders: OrderService = Depends(get_orders)):
    return orders.list_all()


# Declared before /{order_id} so "me" is not taken for an id
@router.get("/api/orders/me")
def my_orders(ident: Dict[str, Any] = Depends(require_user), orders: OrderService = Depends(get_orders)):
    return {"success": True, "orders": orders.list_for_user(ident["email"])}


@router.get("/api/orders/{order_id}")
def get_order(order_id: str, orders: OrderService = Depends(get_orders)):
    order = orders.get_by_id(order_id)
    if not order:
        logger.info("Order {} not found", order_id)
        return _fail(404, "Order not found")
    return order


@router.post("/api/orders")
async def create_order(payload: Dict[str, Any] = Body(...), orders: OrderService = Depends(get_orders)):
    order = await orders.create(payload)
    return JSONResponse(status_code=201, content=order)


@router.put("/api/orders/{order_id}/status")
async def update_order_status(order_id: str, payload: StatusIn, orders: OrderService = Depends(get_orders)):
    logger.info("PUT /api/orders/{}/status - Updating status to {}", order_id, payload.status)
    return await orders.update_status(order_id, payload.status)


@router.put("/api/orders/{order_id}")
async def update_order(order_id: str, payload: Dict[str, Any] = Body(...), orders: OrderService = Depends(get_orders)):
    return await orders.update(order_id, payload)


@router.delete("/api/orders/{order_id}")
async def delete_order(order_id: str, orders: OrderService = Depends(get_orders)):
    return await orders.delete(order_id)


# -------------------
# Realtime
# -------------------
async def _send_error(ws: WebSocket, message: str) -> None:
    await ws.send_json({"event": "error", "data": {"message": message}})


async def _handle_frame(ws: WebSocket, frame: Dict[str, Any], orders: OrderService) -> None:
    event = frame.get("event")
    data = frame.get("data")

    if event == "createOrder":
        await orders.create(data if isinstance(data, dict) else {})
    elif event == "updateOrderStatus":
        data = data if isinstance(data, dict) else {}
        order_id = str(data.get("orderId") or data.get("id") or "")
        await orders.update_status(order_id, data.get("status"))
    elif event == "syncOrders":
        stats = await orders.sync(data)
        await ws.send_json({"event": "syncComplete", "data": stats})
    else:
        await _send_error(ws, f"Unknown event: {event}")


@router.websocket("/ws")
async def realtime(ws: WebSocket):
    gateway: AuthGateway = ws.app.state.gateway
    orders: OrderService = ws.app.state.orders
    hub: ConnectionHub = ws.app.state.hub

    token = ws.query_params.get("token") or _bearer_token(ws.headers.get("authorization"))
    try:
        ident = gateway.authenticate(token)
    except (Unauthenticated, InvalidToken) as e:
        logger.info("Rejected realtime connection: {}", e.message)
        await ws.close(code=1008, reason=e.message)
        return

    await ws.accept()
    await hub.connect(ws)
    logger.info("Realtime client connected for user {}", ident["id"])
    try:
        while True:
            raw = await ws.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await _send_error(ws, "Frames must be JSON objects")
                continue
            if not isinstance(frame, dict):
                await _send_error(ws, "Frames must be JSON objects")
                continue
            try:
                await _handle_frame(ws, frame, orders)
            except AppError as e:
                await _send_error(ws, e.message)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(ws)


# -------------------
# App factory
# -------------------
def _storage(settings: Settings, filename: str) -> CollectionStorage:
    if settings.storage_backend == "memory":
        return MemoryStorage()
    return JsonFileStorage(settings.data_dir / filename)


def _notifier(settings: Settings, hub: ConnectionHub) -> Notifier:
    if settings.deployment_mode == "local" and settings.remote_api_url:
        logger.info("Relaying order changes to {}", settings.remote_api_url)
        return RemoteRelay(settings.remote_api_url, timeout=settings.remote_timeout)
    return hub


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
        return _fail(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = (exc.errors() or [{}])[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg") or ValidationError.default_message
        return _fail(400, f"{where}: {msg}" if where else msg)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return _fail(500, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    hub = ConnectionHub()
    notifier = _notifier(settings, hub)
    users = CredentialStore(_storage(settings, settings.users_file.name))
    order_store = OrderStore(_storage(settings, settings.orders_file.name))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.orders.drain()
        await notifier.aclose()

    app = FastAPI(
        title="Laundry Service API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.hub = hub
    app.state.gateway = AuthGateway(users, settings)
    app.state.orders = OrderService(order_store, notifier)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        # browsers get credentials only from explicitly listed origins
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    app.include_router(router)
    logger.info("Laundry API ready ({} mode, {} storage)", settings.deployment_mode, settings.storage_backend)
    return app


app = create_app()


def run() -> None:
    settings: Settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
