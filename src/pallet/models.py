"""Data models for pallet."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import uuid


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new record ID."""
    return str(uuid.uuid4())


def _enum_or_raw(enum_cls: type[Enum], value: Any, default: Any = None) -> Any:
    """Coerce a stored value into enum_cls, keeping unknown values as-is."""
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


class OrderStatus(str, Enum):
    """The twelve workflow stages, in pipeline order."""

    LEAD = "Lead"
    QUOTE = "Quote"
    APPROVAL = "Approval"
    ART_CONFIRMATION = "Art Confirmation"
    INVENTORY_ORDER = "Inventory Order"
    PRODUCTION_PREP = "Production Prep"
    INVENTORY_RECEIVED = "Inventory Received"
    PRODUCTION = "Production"
    FULFILLMENT = "Fulfillment"
    INVOICE = "Invoice"
    CLOSEOUT = "Closeout"
    CLOSED = "Closed"


class DecorationType(str, Enum):
    SCREEN_PRINT = "ScreenPrint"
    EMBROIDERY = "Embroidery"
    DTF = "DTF"
    OTHER = "Other"


class StitchCountTier(str, Enum):
    UNDER_8K = "<8k"
    FROM_8K_TO_12K = "8k-12k"
    OVER_12K = "12k+"


class DtfSize(str, Enum):
    STANDARD = "Standard"
    LARGE = "Large"


class ArtStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    SENT_TO_CUSTOMER = "Sent to Customer"
    REVISION_REQUESTED = "Revision Requested"
    APPROVED = "Approved"


class ProofStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REVISION_NEEDED = "Revision Needed"


class LeadSource(str, Enum):
    WEBSITE = "Website"
    REFERRAL = "Referral"
    SOCIAL_MEDIA = "Social Media"
    COLD_CALL = "Cold Call"
    TRADE_SHOW = "Trade Show"
    EMAIL_CAMPAIGN = "Email Campaign"
    OTHER = "Other"


class LeadTemperature(str, Enum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"


class FulfillmentMethod(str, Enum):
    SHIPPED = "Shipped"
    PICKED_UP = "PickedUp"


class Role(str, Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    SALES = "Sales"
    PRODUCTION = "Production"
    FULFILLMENT = "Fulfillment"
    READ_ONLY = "ReadOnly"


DEAD_OPPORTUNITY = "Dead Opportunity"
COMPLETED = "Completed"


# Audit values


class AuditKind(str, Enum):
    NONE = "none"
    STATUS = "status"
    BOOL = "bool"
    NUMBER = "number"
    TEXT = "text"
    SNAPSHOT = "snapshot"


@dataclass(frozen=True)
class AuditValue:
    """
    A before/after value recorded in the order history.

    Values are kept as JSON-ready primitives; snapshots hold the
    to_dict() form of a sub-record (or {"items": [...]} for collections).
    """

    kind: AuditKind = AuditKind.NONE
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "AuditValue":
        """Classify a Python value into one of the audit kinds."""
        if value is None:
            return cls()
        if isinstance(value, AuditValue):
            return value
        if isinstance(value, OrderStatus):
            return cls(AuditKind.STATUS, value.value)
        if isinstance(value, Enum):
            return cls(AuditKind.TEXT, value.value)
        # bool is an int subclass, so it must be checked first
        if isinstance(value, bool):
            return cls(AuditKind.BOOL, value)
        if isinstance(value, (int, float)):
            return cls(AuditKind.NUMBER, value)
        if isinstance(value, str):
            return cls(AuditKind.TEXT, value)
        if hasattr(value, "to_dict"):
            return cls(AuditKind.SNAPSHOT, value.to_dict())
        if isinstance(value, (list, tuple)):
            items = [v.to_dict() if hasattr(v, "to_dict") else _value(v) for v in value]
            return cls(AuditKind.SNAPSHOT, {"items": items})
        if isinstance(value, dict):
            return cls(AuditKind.SNAPSHOT, dict(value))
        raise TypeError(f"Unsupported audit value type: {type(value).__name__}")

    @classmethod
    def status(cls, status: "OrderStatus | str") -> "AuditValue":
        return cls(AuditKind.STATUS, _value(status))

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Any) -> "AuditValue":
        # Older exports stored bare values without a kind tag
        if not isinstance(data, dict) or "kind" not in data:
            return cls.of(data)
        return cls(kind=AuditKind(data["kind"]), value=data.get("value"))


@dataclass(frozen=True)
class CurrentUser:
    """The acting user, passed explicitly into every mutation."""

    id: str
    display_name: str
    role: Role = Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "display_name": self.display_name, "role": _value(self.role)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CurrentUser":
        return cls(
            id=data["id"],
            display_name=data.get("display_name", data["id"]),
            role=_enum_or_raw(Role, data.get("role"), Role.ADMIN),
        )


@dataclass(frozen=True)
class StatusChangeLog:
    """A single write-once history entry."""

    timestamp: str
    user_id: str
    user_name: str
    action: str
    previous_value: AuditValue = field(default_factory=AuditValue)
    new_value: AuditValue = field(default_factory=AuditValue)
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "action": self.action,
            "previous_value": self.previous_value.to_dict(),
            "new_value": self.new_value.to_dict(),
        }
        if self.notes is not None:
            result["notes"] = self.notes
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatusChangeLog":
        return cls(
            timestamp=data.get("timestamp", ""),
            user_id=data.get("user_id", ""),
            user_name=data.get("user_name", ""),
            action=data["action"],
            previous_value=AuditValue.from_dict(data.get("previous_value")),
            new_value=AuditValue.from_dict(data.get("new_value")),
            notes=data.get("notes"),
        )


# Line items


@dataclass(frozen=True)
class LineItem:
    """One ordered SKU/color/size variant within an order."""

    id: str
    item_number: str = ""
    name: str = ""
    color: str = ""
    size: str = ""
    qty: int = 0
    decoration_type: DecorationType = DecorationType.OTHER
    decoration_placements: int = 1
    decoration_description: str = ""
    screen_print_colors: int = 1
    stitch_count_tier: StitchCountTier = StitchCountTier.UNDER_8K
    dtf_size: DtfSize = DtfSize.STANDARD
    is_plus_size: bool = False
    cost: float = 0.0
    price: float = 0.0
    ordered: bool = False
    ordered_at: str | None = None
    received: bool = False
    received_at: str | None = None
    decorated: bool = False
    decorated_at: str | None = None
    packed: bool = False
    packed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "item_number": self.item_number,
            "name": self.name,
            "color": self.color,
            "size": self.size,
            "qty": self.qty,
            "decoration_type": _value(self.decoration_type),
            "decoration_placements": self.decoration_placements,
            "decoration_description": self.decoration_description,
            "screen_print_colors": self.screen_print_colors,
            "stitch_count_tier": _value(self.stitch_count_tier),
            "dtf_size": _value(self.dtf_size),
            "is_plus_size": self.is_plus_size,
            "cost": self.cost,
            "price": self.price,
            "ordered": self.ordered,
            "received": self.received,
            "decorated": self.decorated,
            "packed": self.packed,
        }
        for key in ("ordered_at", "received_at", "decorated_at", "packed_at"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        return cls(
            id=data.get("id") or _generate_id(),
            item_number=data.get("item_number", ""),
            name=data.get("name", ""),
            color=data.get("color", ""),
            size=data.get("size", ""),
            qty=data.get("qty", 0),
            decoration_type=_enum_or_raw(
                DecorationType, data.get("decoration_type"), DecorationType.OTHER
            ),
            decoration_placements=data.get("decoration_placements", 1),
            decoration_description=data.get("decoration_description", ""),
            screen_print_colors=data.get("screen_print_colors", 1),
            stitch_count_tier=_enum_or_raw(
                StitchCountTier, data.get("stitch_count_tier"), StitchCountTier.UNDER_8K
            ),
            dtf_size=_enum_or_raw(DtfSize, data.get("dtf_size"), DtfSize.STANDARD),
            is_plus_size=data.get("is_plus_size", False),
            cost=data.get("cost", 0.0),
            price=data.get("price", 0.0),
            ordered=data.get("ordered", False),
            ordered_at=data.get("ordered_at"),
            received=data.get("received", False),
            received_at=data.get("received_at"),
            decorated=data.get("decorated", False),
            decorated_at=data.get("decorated_at"),
            packed=data.get("packed", False),
            packed_at=data.get("packed_at"),
        )

    @classmethod
    def create(cls, **attrs: Any) -> "LineItem":
        """Create a new line item with a generated ID."""
        return cls(id=_generate_id(), **attrs)


# Order sub-records


@dataclass(frozen=True)
class LeadInfo:
    """Sales context captured while an order is a lead."""

    source: LeadSource = LeadSource.WEBSITE
    temperature: LeadTemperature = LeadTemperature.WARM
    estimated_quantity: int = 0
    estimated_value: float = 0.0
    product_interest: str = ""
    decoration_interest: DecorationType | None = None
    contacted_at: str = field(default_factory=_utc_now)
    event_date: str | None = None
    follow_up_date: str | None = None
    last_contact_at: str | None = None
    contact_notes: str | None = None
    competitor_quoted: str | None = None
    decision_maker: str | None = None
    budget: float | None = None

    _OPTIONAL = (
        "event_date",
        "follow_up_date",
        "last_contact_at",
        "contact_notes",
        "competitor_quoted",
        "decision_maker",
        "budget",
    )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "source": _value(self.source),
            "temperature": _value(self.temperature),
            "estimated_quantity": self.estimated_quantity,
            "estimated_value": self.estimated_value,
            "product_interest": self.product_interest,
            "contacted_at": self.contacted_at,
        }
        if self.decoration_interest is not None:
            result["decoration_interest"] = _value(self.decoration_interest)
        for key in self._OPTIONAL:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeadInfo":
        return cls(
            source=_enum_or_raw(LeadSource, data.get("source"), LeadSource.WEBSITE),
            temperature=_enum_or_raw(
                LeadTemperature, data.get("temperature"), LeadTemperature.WARM
            ),
            estimated_quantity=data.get("estimated_quantity", 0),
            estimated_value=data.get("estimated_value", 0.0),
            product_interest=data.get("product_interest", ""),
            decoration_interest=_enum_or_raw(DecorationType, data.get("decoration_interest")),
            contacted_at=data.get("contacted_at", ""),
            **{key: data.get(key) for key in cls._OPTIONAL},
        )


@dataclass(frozen=True)
class PrepStatus:
    """Production prep flags; None means not applicable yet."""

    gang_sheet_created: bool | None = None
    artwork_digitized: bool | None = None
    screens_burned: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "gang_sheet_created": self.gang_sheet_created,
            "artwork_digitized": self.artwork_digitized,
            "screens_burned": self.screens_burned,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PrepStatus":
        return cls(
            gang_sheet_created=data.get("gang_sheet_created"),
            artwork_digitized=data.get("artwork_digitized"),
            screens_burned=data.get("screens_burned"),
        )


@dataclass(frozen=True)
class FulfillmentStatus:
    method: FulfillmentMethod | None = None
    shipping_label_printed: bool = False
    customer_picked_up: bool = False
    tracking_number: str | None = None
    fulfilled_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "method": _value(self.method),
            "shipping_label_printed": self.shipping_label_printed,
            "customer_picked_up": self.customer_picked_up,
        }
        if self.tracking_number is not None:
            result["tracking_number"] = self.tracking_number
        if self.fulfilled_at is not None:
            result["fulfilled_at"] = self.fulfilled_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FulfillmentStatus":
        return cls(
            method=_enum_or_raw(FulfillmentMethod, data.get("method")),
            shipping_label_printed=data.get("shipping_label_printed", False),
            customer_picked_up=data.get("customer_picked_up", False),
            tracking_number=data.get("tracking_number"),
            fulfilled_at=data.get("fulfilled_at"),
        )


@dataclass(frozen=True)
class InvoiceStatus:
    invoice_created: bool = False
    invoice_sent: bool = False
    payment_received: bool = False
    invoice_number: str | None = None
    invoice_amount: float | None = None
    invoice_sent_at: str | None = None
    payment_received_at: str | None = None
    payment_method: str | None = None

    _OPTIONAL = (
        "invoice_number",
        "invoice_amount",
        "invoice_sent_at",
        "payment_received_at",
        "payment_method",
    )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "invoice_created": self.invoice_created,
            "invoice_sent": self.invoice_sent,
            "payment_received": self.payment_received,
        }
        for key in self._OPTIONAL:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvoiceStatus":
        return cls(
            invoice_created=data.get("invoice_created", False),
            invoice_sent=data.get("invoice_sent", False),
            payment_received=data.get("payment_received", False),
            **{key: data.get(key) for key in cls._OPTIONAL},
        )


@dataclass(frozen=True)
class CloseoutChecklist:
    files_saved: bool = False
    canva_archived: bool = False
    summary_uploaded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_saved": self.files_saved,
            "canva_archived": self.canva_archived,
            "summary_uploaded": self.summary_uploaded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CloseoutChecklist":
        return cls(
            files_saved=data.get("files_saved", False),
            canva_archived=data.get("canva_archived", False),
            summary_uploaded=data.get("summary_uploaded", False),
        )

    def is_complete(self) -> bool:
        return self.files_saved and self.canva_archived and self.summary_uploaded


# Art confirmation (metadata and URLs only)


@dataclass(frozen=True)
class ArtProof:
    """One proof version sent to the customer for a placement."""

    id: str
    version: int = 1
    proof_name: str = ""
    proof_url: str | None = None
    proof_notes: str | None = None
    status: ProofStatus = ProofStatus.DRAFT
    customer_feedback: str | None = None
    created_at: str = field(default_factory=_utc_now)
    sent_to_customer_at: str | None = None
    approved_at: str | None = None

    _OPTIONAL = (
        "proof_url",
        "proof_notes",
        "customer_feedback",
        "sent_to_customer_at",
        "approved_at",
    )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "proof_name": self.proof_name,
            "status": _value(self.status),
            "created_at": self.created_at,
        }
        for key in self._OPTIONAL:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArtProof":
        return cls(
            id=data["id"],
            version=data.get("version", 1),
            proof_name=data.get("proof_name", ""),
            status=_enum_or_raw(ProofStatus, data.get("status"), ProofStatus.DRAFT),
            created_at=data.get("created_at", ""),
            **{key: data.get(key) for key in cls._OPTIONAL},
        )


@dataclass(frozen=True)
class ArtPlacement:
    """A decoration location on the garment (front, left sleeve, ...)."""

    id: str
    location: str
    width: float | None = None
    height: float | None = None
    color_count: int = 1
    description: str = ""
    proofs: tuple[ArtProof, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "location": self.location,
            "color_count": self.color_count,
            "description": self.description,
            "proofs": [p.to_dict() for p in self.proofs],
        }
        if self.width is not None:
            result["width"] = self.width
        if self.height is not None:
            result["height"] = self.height
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArtPlacement":
        return cls(
            id=data["id"],
            location=data.get("location", ""),
            width=data.get("width"),
            height=data.get("height"),
            color_count=data.get("color_count", 1),
            description=data.get("description", ""),
            proofs=tuple(ArtProof.from_dict(p) for p in data.get("proofs", [])),
        )

    @property
    def latest_proof(self) -> ArtProof | None:
        if not self.proofs:
            return None
        return max(self.proofs, key=lambda p: p.version)


@dataclass(frozen=True)
class ArtConfirmation:
    overall_status: ArtStatus = ArtStatus.NOT_STARTED
    placements: tuple[ArtPlacement, ...] = ()
    designer_notes: str | None = None
    customer_contact_method: str | None = None
    last_contacted_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "overall_status": _value(self.overall_status),
            "placements": [p.to_dict() for p in self.placements],
        }
        for key in ("designer_notes", "customer_contact_method", "last_contacted_at"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArtConfirmation":
        return cls(
            overall_status=_enum_or_raw(
                ArtStatus, data.get("overall_status"), ArtStatus.NOT_STARTED
            ),
            placements=tuple(ArtPlacement.from_dict(p) for p in data.get("placements", [])),
            designer_notes=data.get("designer_notes"),
            customer_contact_method=data.get("customer_contact_method"),
            last_contacted_at=data.get("last_contacted_at"),
        )


# Orders


@dataclass(frozen=True)
class Order:
    """
    The aggregate root: one customer job from lead to closeout.

    Orders are immutable values. Every change builds a new Order with
    dataclasses.replace, reusing the unchanged sub-records and history
    entries of the previous value.

    status is normally an OrderStatus, but a stored value outside the
    known stages is kept as a plain string so validation can report it.
    """

    id: str
    order_number: str
    customer: str
    status: OrderStatus | str = OrderStatus.LEAD
    customer_email: str = ""
    customer_phone: str = ""
    project_name: str = ""
    art_status: ArtStatus = ArtStatus.NOT_STARTED
    due_date: str = ""
    rush_order: bool = False
    notes: str = ""
    line_items: tuple[LineItem, ...] = ()
    lead_info: LeadInfo | None = None
    prep_status: PrepStatus = field(default_factory=PrepStatus)
    fulfillment: FulfillmentStatus = field(default_factory=FulfillmentStatus)
    invoice_status: InvoiceStatus = field(default_factory=InvoiceStatus)
    closeout_checklist: CloseoutChecklist = field(default_factory=CloseoutChecklist)
    art_confirmation: ArtConfirmation = field(default_factory=ArtConfirmation)
    history: tuple[StatusChangeLog, ...] = ()
    version: int = 1
    is_archived: bool = False
    archived_at: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)
    closed_at: str | None = None
    closed_reason: str | None = None
    reopened_from: OrderStatus | str | None = None

    @property
    def is_dead_opportunity(self) -> bool:
        return self.status == OrderStatus.CLOSED and self.closed_reason == DEAD_OPPORTUNITY

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "order_number": self.order_number,
            "customer": self.customer,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "project_name": self.project_name,
            "status": _value(self.status),
            "art_status": _value(self.art_status),
            "due_date": self.due_date,
            "rush_order": self.rush_order,
            "notes": self.notes,
            "line_items": [item.to_dict() for item in self.line_items],
            "prep_status": self.prep_status.to_dict(),
            "fulfillment": self.fulfillment.to_dict(),
            "invoice_status": self.invoice_status.to_dict(),
            "closeout_checklist": self.closeout_checklist.to_dict(),
            "art_confirmation": self.art_confirmation.to_dict(),
            "history": [entry.to_dict() for entry in self.history],
            "version": self.version,
            "is_archived": self.is_archived,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.lead_info is not None:
            result["lead_info"] = self.lead_info.to_dict()
        if self.archived_at is not None:
            result["archived_at"] = self.archived_at
        if self.closed_at is not None:
            result["closed_at"] = self.closed_at
        if self.closed_reason is not None:
            result["closed_reason"] = self.closed_reason
        if self.reopened_from is not None:
            result["reopened_from"] = _value(self.reopened_from)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        lead_info = None
        if data.get("lead_info") is not None:
            lead_info = LeadInfo.from_dict(data["lead_info"])
        return cls(
            id=data["id"],
            order_number=data.get("order_number", ""),
            customer=data.get("customer", ""),
            status=_enum_or_raw(OrderStatus, data.get("status"), OrderStatus.LEAD),
            customer_email=data.get("customer_email", ""),
            customer_phone=data.get("customer_phone", ""),
            project_name=data.get("project_name", ""),
            art_status=_enum_or_raw(ArtStatus, data.get("art_status"), ArtStatus.NOT_STARTED),
            due_date=data.get("due_date", ""),
            rush_order=data.get("rush_order", False),
            notes=data.get("notes", ""),
            line_items=tuple(LineItem.from_dict(i) for i in data.get("line_items", [])),
            lead_info=lead_info,
            prep_status=PrepStatus.from_dict(data.get("prep_status", {})),
            fulfillment=FulfillmentStatus.from_dict(data.get("fulfillment", {})),
            invoice_status=InvoiceStatus.from_dict(data.get("invoice_status", {})),
            closeout_checklist=CloseoutChecklist.from_dict(data.get("closeout_checklist", {})),
            art_confirmation=ArtConfirmation.from_dict(data.get("art_confirmation", {})),
            history=tuple(StatusChangeLog.from_dict(h) for h in data.get("history", [])),
            version=data.get("version", 1),
            is_archived=data.get("is_archived", False),
            archived_at=data.get("archived_at"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            closed_at=data.get("closed_at"),
            closed_reason=data.get("closed_reason"),
            reopened_from=_enum_or_raw(OrderStatus, data.get("reopened_from")),
        )

    @classmethod
    def create(
        cls,
        customer: str,
        order_number: str,
        status: OrderStatus = OrderStatus.LEAD,
        now: str | None = None,
        **fields: Any,
    ) -> "Order":
        """Create a new order with generated ID and timestamps."""
        now = now or _utc_now()
        return cls(
            id=_generate_id(),
            order_number=order_number,
            customer=customer,
            status=status,
            created_at=now,
            updated_at=now,
            **fields,
        )
