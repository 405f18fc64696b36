"""FastAPI REST API for pallet order tracking."""

from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .errors import (
    ConfirmationRequiredError,
    InvalidSchemaVersionError,
    InvalidSizeSpecError,
    InvalidStatusError,
    MissingCustomerError,
    OrderNotFoundError,
    PalletError,
    PermissionDeniedError,
    StoreExistsError,
    StoreNotFoundError,
    TransitionNotAllowedError,
)
from .line_items import reprice
from .logging_config import add_context, clear_context, configure_logging
from .models import CurrentUser, LineItem, Order, Role, StatusChangeLog
from .order_store import OrderStore
from .permissions import get_permissions, require
from .pricing import order_total, price_breakdown
from .stages import (
    ORDER_STAGES,
    gate_for,
    next_stage,
    parse_status,
    stage_number,
    status_label,
)
from .validation import validate_orders
from .workflow import (
    advance_stage,
    archive_order,
    check_transition,
    close_order,
    create_order,
    move_to_dead_opportunity,
    reopen_order,
    unarchive_order,
    update_line_items,
    update_order,
)

logger = structlog.get_logger(__name__)

DELETE_CONFIRMATION = "DELETE"


# --- Pydantic Schemas ---


class AuditValueSchema(BaseModel):
    kind: str
    value: Any = None


class HistoryEntrySchema(BaseModel):
    timestamp: str
    user_id: str
    user_name: str
    action: str
    previous_value: AuditValueSchema
    new_value: AuditValueSchema
    notes: Optional[str] = None


class LineItemSchema(BaseModel):
    id: str
    item_number: str = ""
    name: str = ""
    color: str = ""
    size: str = ""
    qty: int = 0
    decoration_type: str = "Other"
    decoration_placements: int = 1
    decoration_description: str = ""
    screen_print_colors: int = 1
    stitch_count_tier: str = "<8k"
    dtf_size: str = "Standard"
    is_plus_size: bool = False
    cost: float = 0.0
    price: float = 0.0
    ordered: bool = False
    ordered_at: Optional[str] = None
    received: bool = False
    received_at: Optional[str] = None
    decorated: bool = False
    decorated_at: Optional[str] = None
    packed: bool = False
    packed_at: Optional[str] = None


class LineItemInput(BaseModel):
    """A line item as submitted by a client; id is generated when absent."""

    id: Optional[str] = None
    item_number: str = ""
    name: str = ""
    color: str = ""
    size: str = ""
    qty: int = Field(default=0, ge=0)
    decoration_type: str = "Other"
    decoration_placements: int = Field(default=1, ge=0)
    decoration_description: str = ""
    screen_print_colors: int = Field(default=1, ge=0)
    stitch_count_tier: str = "<8k"
    dtf_size: str = "Standard"
    is_plus_size: bool = False
    cost: float = Field(default=0.0, ge=0)
    price: float = 0.0
    ordered: bool = False
    ordered_at: Optional[str] = None
    received: bool = False
    received_at: Optional[str] = None
    decorated: bool = False
    decorated_at: Optional[str] = None
    packed: bool = False
    packed_at: Optional[str] = None


class OrderSchema(BaseModel):
    id: str
    order_number: str
    customer: str
    customer_email: str = ""
    customer_phone: str = ""
    project_name: str = ""
    status: str
    stage_number: Optional[int] = None
    art_status: str
    due_date: str = ""
    rush_order: bool = False
    notes: str = ""
    line_items: list[LineItemSchema]
    lead_info: Optional[dict[str, Any]] = None
    prep_status: dict[str, Any]
    fulfillment: dict[str, Any]
    invoice_status: dict[str, Any]
    closeout_checklist: dict[str, Any]
    art_confirmation: dict[str, Any]
    history: list[HistoryEntrySchema]
    version: int
    is_archived: bool = False
    archived_at: Optional[str] = None
    created_at: str
    updated_at: str
    closed_at: Optional[str] = None
    closed_reason: Optional[str] = None
    reopened_from: Optional[str] = None
    total: float = 0.0


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int
    counts_by_stage: dict[str, int]


class OrderCreateRequest(BaseModel):
    """Request body for creating an order."""

    customer: str = Field(..., description="Customer name (required)")
    customer_email: str = ""
    customer_phone: str = ""
    project_name: str = ""
    status: Optional[str] = Field(None, description="Starting stage (default: Lead)")
    order_number: Optional[str] = Field(None, description="Generated when omitted")
    due_date: str = ""
    rush_order: bool = False
    notes: str = ""
    line_items: list[LineItemInput] = Field(default_factory=list)
    lead_info: Optional[dict[str, Any]] = None


class OrderUpdateRequest(BaseModel):
    """Request body for updating order details. Only supplied fields change."""

    customer: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    project_name: Optional[str] = None
    art_status: Optional[str] = None
    due_date: Optional[str] = None
    rush_order: Optional[bool] = None
    notes: Optional[str] = None
    lead_info: Optional[dict[str, Any]] = None
    prep_status: Optional[dict[str, Any]] = None
    fulfillment: Optional[dict[str, Any]] = None
    invoice_status: Optional[dict[str, Any]] = None
    closeout_checklist: Optional[dict[str, Any]] = None
    art_confirmation: Optional[dict[str, Any]] = None
    history_notes: Optional[str] = Field(None, description="Notes for the history entry")


class AdvanceRequest(BaseModel):
    status: Optional[str] = Field(None, description="Target stage (default: next stage)")
    notes: Optional[str] = None
    bypass: bool = Field(
        default=False, description="Waive the Art Confirmation or Production Prep gate"
    )
    strict: bool = Field(default=False, description="Refuse the move if the gate is not met")


class AdvanceResponse(BaseModel):
    order: OrderSchema
    gate_warning: Optional[str] = None


class TransitionCheckResponse(BaseModel):
    current: str
    target: str
    valid: bool
    reason: Optional[str] = None
    gate_met: bool
    gate_reason: Optional[str] = None


class LineItemsUpdateRequest(BaseModel):
    line_items: list[LineItemInput]
    reprice: bool = Field(default=True, description="Recompute each item's price")
    notes: Optional[str] = None


class DeadOpportunityRequest(BaseModel):
    also_create_lead: bool = False
    notes: Optional[str] = None


class DeadOpportunityResponse(BaseModel):
    dead_order: OrderSchema
    new_lead: Optional[OrderSchema] = None


class CloseRequest(BaseModel):
    reason: str = "Completed"
    notes: Optional[str] = None


class ReopenRequest(BaseModel):
    status: str = Field(..., description="Stage to reopen at")
    notes: Optional[str] = None


class ArchiveRequest(BaseModel):
    archived: bool = True


class DeleteOrdersRequest(BaseModel):
    order_ids: list[str]
    confirm: str = Field("", description=f"Must be '{DELETE_CONFIRMATION}'")


class DeleteOrdersResponse(BaseModel):
    deleted: list[str]
    count: int


class PriceRequest(BaseModel):
    cost: float = Field(default=0.0, ge=0)
    decoration_type: str = "Other"
    decoration_placements: int = Field(default=1, ge=0)
    screen_print_colors: int = Field(default=1, ge=0)
    is_plus_size: bool = False
    stitch_count_tier: str = "<8k"
    dtf_size: str = "Standard"


class FeeSchema(BaseModel):
    label: str
    amount: float


class PriceBreakdownSchema(BaseModel):
    base: float
    fees: list[FeeSchema]
    total: float


class OrderValidationSchema(BaseModel):
    order_id: str
    order_number: str
    valid: bool
    errors: list[str]
    warnings: list[str]


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]
    duplicate_count: int
    order_results: list[OrderValidationSchema]


class ErrorResponse(BaseModel):
    detail: str
    error_type: str


# --- Helper Functions ---


def get_order_store() -> OrderStore:
    """Get the OrderStore for the configured data directory."""
    return OrderStore()


def get_actor(
    x_user_id: str = Header(default="api"),
    x_user_name: Optional[str] = Header(default=None),
    x_user_role: str = Header(default=Role.ADMIN.value),
) -> CurrentUser:
    """Build the acting user from request headers."""
    try:
        role = Role(x_user_role)
    except ValueError:
        raise PermissionDeniedError(x_user_role, "use pallet") from None
    return CurrentUser(id=x_user_id, display_name=x_user_name or x_user_id, role=role)


def order_to_schema(order: Order) -> OrderSchema:
    """Convert dataclass Order to Pydantic schema."""
    data = order.to_dict()
    data["stage_number"] = stage_number(order.status)
    data["total"] = order_total(order)
    return OrderSchema(**data)


def _input_to_item(item: LineItemInput) -> LineItem:
    return LineItem.from_dict(item.model_dump())


# --- FastAPI App ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="pallet API",
    description="REST API for tracking apparel decoration orders",
    version=__version__,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Tag log events from this request with its method and path."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    return await call_next(request)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    PalletError: 400,
    StoreNotFoundError: 409,
    StoreExistsError: 409,
    InvalidSchemaVersionError: 500,
    OrderNotFoundError: 404,
    MissingCustomerError: 400,
    InvalidStatusError: 400,
    InvalidSizeSpecError: 400,
    TransitionNotAllowedError: 409,
    PermissionDeniedError: 403,
    ConfirmationRequiredError: 400,
}


@app.exception_handler(PalletError)
async def pallet_error_handler(request: Request, exc: PalletError) -> JSONResponse:
    """Map PalletError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    logger.warning(
        "Request failed",
        path=request.url.path,
        status_code=status_code,
        error_type=type(exc).__name__,
        detail=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """
    Health check endpoint.

    Reports whether the order store exists and how many orders it holds.
    """
    store = get_order_store()
    if not store.exists():
        return {"status": "ok", "store_initialized": False, "order_count": 0}
    return {
        "status": "ok",
        "store_initialized": True,
        "order_count": len(store.load()),
    }


@app.get("/api/stages")
def list_stages():
    """The workflow stages in order."""
    return [{"number": i, "name": stage.value} for i, stage in enumerate(ORDER_STAGES)]


@app.get("/api/me/permissions")
def my_permissions(actor: CurrentUser = Depends(get_actor)):
    """Permission flags for the acting user."""
    return get_permissions(actor).to_dict()


# --- Order Endpoints ---


@app.get("/api/orders", response_model=OrderListResponse)
def list_orders(
    stage: Optional[str] = Query(default=None),
    include_archived: bool = Query(default=False),
):
    """List orders. A stage filter always excludes archived orders."""
    collection = get_order_store().load()
    if stage:
        orders = collection.board(parse_status(stage))
    elif include_archived:
        orders = list(collection.orders)
    else:
        orders = collection.active()
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        count=len(orders),
        counts_by_stage=collection.counts_by_stage(),
    )


@app.post("/api/orders", response_model=OrderSchema, status_code=201)
def create_order_endpoint(
    request: OrderCreateRequest, actor: CurrentUser = Depends(get_actor)
):
    """Create a new order (Lead by default)."""
    require(actor, "can_create_orders")
    store = get_order_store()
    fields = request.model_dump(exclude_unset=True)
    if request.line_items:
        fields["line_items"] = [reprice(_input_to_item(i)) for i in request.line_items]
    order = create_order(fields, actor)
    store.put(order)
    return order_to_schema(order)


@app.get("/api/orders/{order_ref}", response_model=OrderSchema)
def get_order(order_ref: str):
    """Get a single order by ID, ID prefix, or order number."""
    return order_to_schema(get_order_store().get(order_ref))


@app.patch("/api/orders/{order_ref}", response_model=OrderSchema)
def update_order_endpoint(
    order_ref: str, request: OrderUpdateRequest, actor: CurrentUser = Depends(get_actor)
):
    """Update order details. One history entry is recorded per request."""
    require(actor, "can_edit_orders")
    store = get_order_store()
    order = store.get(order_ref)
    changes = request.model_dump(exclude_unset=True)
    notes = changes.pop("history_notes", None)
    if changes.get("art_status") == "Approved":
        require(actor, "can_approve_art")
    updated = update_order(order, actor, notes=notes, **changes)
    if updated is not order:
        store.put(updated)
    return order_to_schema(updated)


@app.get("/api/orders/{order_ref}/history", response_model=list[HistoryEntrySchema])
def get_order_history(order_ref: str):
    order = get_order_store().get(order_ref)
    return [HistoryEntrySchema(**entry.to_dict()) for entry in order.history]


@app.get("/api/orders/{order_ref}/transition", response_model=TransitionCheckResponse)
def check_order_transition(
    order_ref: str,
    target: str = Query(...),
    bypass: bool = Query(default=False),
):
    """Check, without changing anything, whether a move follows the workflow policy."""
    order = get_order_store().get(order_ref)
    check = check_transition(order, target, bypass=bypass)
    gate = gate_for(order, bypass=bypass)
    return TransitionCheckResponse(
        current=status_label(order.status),
        target=parse_status(target).value,
        valid=check.valid,
        reason=check.reason,
        gate_met=gate.met,
        gate_reason=gate.reason,
    )


@app.post("/api/orders/{order_ref}/advance", response_model=AdvanceResponse)
def advance_order(
    order_ref: str, request: AdvanceRequest, actor: CurrentUser = Depends(get_actor)
):
    """
    Move an order to another stage.

    Without strict, the move is always recorded and any unmet gate is
    returned as gate_warning.
    """
    require(actor, "can_advance_stage")
    store = get_order_store()
    order = store.get(order_ref)

    target = request.status
    if target is None:
        target = next_stage(parse_status(order.status))
        if target is None:
            raise TransitionNotAllowedError(
                status_label(order.status),
                status_label(order.status),
                "order is closed; reopen it instead",
            )

    warning = None
    if not request.strict:
        check = check_transition(order, target, bypass=request.bypass)
        warning = None if check.valid else check.reason

    updated = advance_stage(
        order,
        target,
        actor,
        notes=request.notes,
        bypass=request.bypass,
        strict=request.strict,
    )
    store.put(updated)
    return AdvanceResponse(order=order_to_schema(updated), gate_warning=warning)


@app.put("/api/orders/{order_ref}/line-items", response_model=OrderSchema)
def replace_line_items(
    order_ref: str, request: LineItemsUpdateRequest, actor: CurrentUser = Depends(get_actor)
):
    """Replace an order's line items, repricing them unless reprice=false."""
    require(actor, "can_edit_orders")
    store = get_order_store()
    order = store.get(order_ref)
    items = [_input_to_item(i) for i in request.line_items]
    if request.reprice:
        items = [reprice(item) for item in items]
    updated = update_line_items(order, items, actor, notes=request.notes)
    store.put(updated)
    return order_to_schema(updated)


@app.post(
    "/api/orders/{order_ref}/dead-opportunity", response_model=DeadOpportunityResponse
)
def dead_opportunity(
    order_ref: str, request: DeadOpportunityRequest, actor: CurrentUser = Depends(get_actor)
):
    """Close an order as a dead opportunity, optionally spawning a new lead."""
    require(actor, "can_advance_stage")
    store = get_order_store()
    order = store.get(order_ref)
    result = move_to_dead_opportunity(
        order, actor, also_create_lead=request.also_create_lead, notes=request.notes
    )
    if result.new_lead is not None:
        store.put(result.dead_order, result.new_lead)
    else:
        store.put(result.dead_order)
    return DeadOpportunityResponse(
        dead_order=order_to_schema(result.dead_order),
        new_lead=order_to_schema(result.new_lead) if result.new_lead else None,
    )


@app.post("/api/orders/{order_ref}/close", response_model=OrderSchema)
def close_order_endpoint(
    order_ref: str, request: CloseRequest, actor: CurrentUser = Depends(get_actor)
):
    require(actor, "can_advance_stage")
    store = get_order_store()
    updated = close_order(store.get(order_ref), actor, reason=request.reason, notes=request.notes)
    store.put(updated)
    return order_to_schema(updated)


@app.post("/api/orders/{order_ref}/reopen", response_model=OrderSchema)
def reopen_order_endpoint(
    order_ref: str, request: ReopenRequest, actor: CurrentUser = Depends(get_actor)
):
    """Reopen a closed order at the given stage."""
    require(actor, "can_advance_stage")
    store = get_order_store()
    updated = reopen_order(store.get(order_ref), request.status, actor, notes=request.notes)
    store.put(updated)
    return order_to_schema(updated)


@app.post("/api/orders/{order_ref}/archive", response_model=OrderSchema)
def archive_order_endpoint(
    order_ref: str, request: ArchiveRequest, actor: CurrentUser = Depends(get_actor)
):
    require(actor, "can_archive_orders")
    store = get_order_store()
    order = store.get(order_ref)
    if request.archived:
        updated = archive_order(order, actor)
    else:
        updated = unarchive_order(order, actor)
    if updated is not order:
        store.put(updated)
    return order_to_schema(updated)


@app.post("/api/orders/delete", response_model=DeleteOrdersResponse)
def delete_orders(request: DeleteOrdersRequest, actor: CurrentUser = Depends(get_actor)):
    """
    Permanently delete orders.

    Requires the delete permission and confirm set to 'DELETE'. There is
    no undo.
    """
    require(actor, "can_delete_orders")
    if request.confirm != DELETE_CONFIRMATION:
        raise ConfirmationRequiredError(DELETE_CONFIRMATION)
    removed = get_order_store().delete(request.order_ids, actor)
    return DeleteOrdersResponse(deleted=[o.id for o in removed], count=len(removed))


# --- Validation & Pricing Endpoints ---


@app.get("/api/validation", response_model=ValidationResponse)
def validate_all_orders():
    """Run consistency checks over every stored order."""
    result = validate_orders(get_order_store().load().orders)
    return ValidationResponse(**result.to_dict())


@app.post("/api/pricing/preview", response_model=PriceBreakdownSchema)
def preview_price(request: PriceRequest):
    """Price a line item without storing anything."""
    return PriceBreakdownSchema(**price_breakdown(request.model_dump()).to_dict())
