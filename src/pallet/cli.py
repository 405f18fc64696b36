"""Command-line interface for pallet."""

import argparse
import json
import os
import sys

from . import __version__
from .audit import format_entry
from .errors import (
    ConfirmationRequiredError,
    InvalidSizeSpecError,
    PalletError,
    PermissionDeniedError,
)
from .line_items import (
    ColorRow,
    SkuConfig,
    build_line_items,
    mark_all_ordered,
    mark_all_production_complete,
    mark_all_received,
)
from .logging_config import add_context, clear_context, configure_logging
from .models import (
    ArtStatus,
    CurrentUser,
    DecorationType,
    DtfSize,
    FulfillmentMethod,
    Role,
    StitchCountTier,
)
from .order_store import OrderStore
from .permissions import require
from .pricing import price_breakdown
from .stages import ORDER_STAGES, next_stage, parse_status, status_label
from .utils import format_breakdown, format_order, parse_sizes, truncate_id
from .validation import format_report, validate_orders
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

DELETE_CONFIRMATION = "DELETE"

PREP_FLAGS = ("gang_sheet_created", "artwork_digitized", "screens_burned")
INVOICE_FLAGS = {"created": "invoice_created", "sent": "invoice_sent", "paid": "payment_received"}
CLOSEOUT_FLAGS = ("files_saved", "canva_archived", "summary_uploaded")


def get_store() -> OrderStore:
    """Get the OrderStore for the configured data directory."""
    return OrderStore()


def get_actor(args: argparse.Namespace) -> CurrentUser:
    """Resolve the acting user from --user/--role or PALLET_USER/PALLET_ROLE."""
    user_id = args.user or os.environ.get("PALLET_USER", "cli")
    role_name = args.role or os.environ.get("PALLET_ROLE", Role.ADMIN.value)
    try:
        role = Role(role_name)
    except ValueError:
        raise PermissionDeniedError(role_name, "use pallet") from None
    return CurrentUser(id=user_id, display_name=user_id, role=role)


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the order store."""
    try:
        store = get_store()
        store.init(force=args.force)
        print(f"Initialized order store at {store.path}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_create(args: argparse.Namespace) -> int:
    """Create a new order."""
    try:
        actor = get_actor(args)
        require(actor, "can_create_orders")
        store = get_store()

        fields = {
            "customer": args.customer,
            "customer_email": args.email or "",
            "customer_phone": args.phone or "",
            "project_name": args.project or "",
            "status": args.status or None,
            "due_date": args.due or "",
            "rush_order": args.rush,
            "order_number": args.number,
        }
        order = create_order(fields, actor)
        store.put(order)

        print(f"Created order: {order.order_number}")
        print(f"  ID: {order.id}")
        print(f"  Customer: {order.customer}")
        print(f"  Stage: {status_label(order.status)}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_list(args: argparse.Namespace) -> int:
    """List orders, optionally for a single stage."""
    try:
        store = get_store()
        collection = store.load()

        if args.stage:
            orders = collection.board(parse_status(args.stage))
        elif args.all:
            orders = list(collection.orders)
        else:
            orders = collection.active()

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
            return 0

        if not args.stage:
            counts = collection.counts_by_stage()
            print("Board: " + "  ".join(f"{stage}={n}" for stage, n in counts.items() if n))

        if not orders:
            print("No orders found.")
            return 0

        print(f"Orders ({len(orders)}):")
        for order in orders:
            print(format_order(order, verbose=args.verbose))
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_show(args: argparse.Namespace) -> int:
    """Show one order."""
    try:
        order = get_store().get(args.order)

        if args.json:
            print(json.dumps(order.to_dict(), indent=2))
            return 0

        print(format_order(order, verbose=True))
        if args.history:
            print("History:")
            for entry in order.history:
                print(f"  {format_entry(entry)}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_advance(args: argparse.Namespace) -> int:
    """Move an order to the next (or a given) stage."""
    try:
        actor = get_actor(args)
        require(actor, "can_advance_stage")
        store = get_store()
        order = store.get(args.order)

        target = parse_status(args.stage) if args.stage else next_stage(order.status)
        if target is None:
            print(
                f"Error: {order.order_number} is closed. Use 'pallet reopen' instead.",
                file=sys.stderr,
            )
            return 1

        if not args.strict:
            check = check_transition(order, target, bypass=args.bypass)
            if not check.valid:
                print(f"Warning: {check.reason}", file=sys.stderr)

        updated = advance_stage(
            order, target, actor, notes=args.notes, bypass=args.bypass, strict=args.strict
        )
        store.put(updated)

        print(f"{order.order_number}: {status_label(order.status)} -> {target.value}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _parse_variant(spec: str) -> ColorRow:
    color, sep, sizes = spec.partition(":")
    if not sep:
        raise InvalidSizeSpecError(spec, "expected 'COLOR:SIZE=QTY,...'")
    return ColorRow(color=color, sizes=parse_sizes(sizes))


def cmd_add_items(args: argparse.Namespace) -> int:
    """Add priced line items for one SKU across colors and sizes."""
    try:
        actor = get_actor(args)
        require(actor, "can_edit_orders")
        store = get_store()
        order = store.get(args.order)

        sku = SkuConfig(
            item_number=args.item_number or "",
            name=args.name,
            decoration_type=DecorationType(args.decoration),
            decoration_placements=args.placements,
            decoration_description=args.description or "",
            screen_print_colors=args.colors,
            stitch_count_tier=StitchCountTier(args.stitches),
            dtf_size=DtfSize(args.dtf_size),
            cost=args.cost,
        )
        rows = [_parse_variant(v) for v in args.variant]
        new_items = build_line_items(sku, rows)
        if not new_items:
            print("No line items to add (all quantities were zero).")
            return 0

        updated = update_line_items(order, order.line_items + new_items, actor)
        store.put(updated)

        print(f"Added {len(new_items)} line item(s) to {order.order_number}")
        for item in new_items:
            print(f"  {item.qty} x {item.color}/{item.size} @ ${item.price:.2f}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_progress(args: argparse.Namespace) -> int:
    """Mark all line items ordered, received, or production complete."""
    try:
        actor = get_actor(args)
        require(actor, "can_edit_orders")
        store = get_store()
        order = store.get(args.order)

        mark = {
            "ordered": mark_all_ordered,
            "received": mark_all_received,
            "production": mark_all_production_complete,
        }[args.step]
        updated = update_line_items(
            order, mark(order.line_items), actor, notes=f"Marked all {args.step}"
        )
        store.put(updated)

        print(f"{order.order_number}: marked {len(order.line_items)} item(s) {args.step}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_update(args: argparse.Namespace) -> int:
    """Update art, prep, fulfillment, invoice, or closeout details."""
    try:
        actor = get_actor(args)
        require(actor, "can_edit_orders")
        store = get_store()
        order = store.get(args.order)

        changes: dict = {}
        if args.art_status:
            if args.art_status == ArtStatus.APPROVED.value:
                require(actor, "can_approve_art")
            changes["art_status"] = ArtStatus(args.art_status)
        if args.prep:
            prep = order.prep_status.to_dict()
            prep.update({flag: True for flag in args.prep})
            changes["prep_status"] = prep
        if args.method or args.label_printed or args.picked_up or args.tracking:
            fulfillment = order.fulfillment.to_dict()
            if args.method:
                fulfillment["method"] = FulfillmentMethod(args.method).value
            if args.label_printed:
                fulfillment["shipping_label_printed"] = True
            if args.picked_up:
                fulfillment["customer_picked_up"] = True
            if args.tracking:
                fulfillment["tracking_number"] = args.tracking
            changes["fulfillment"] = fulfillment
        if args.invoice:
            invoice = order.invoice_status.to_dict()
            invoice.update({INVOICE_FLAGS[flag]: True for flag in args.invoice})
            changes["invoice_status"] = invoice
        if args.closeout:
            checklist = order.closeout_checklist.to_dict()
            checklist.update({flag: True for flag in args.closeout})
            changes["closeout_checklist"] = checklist
        if args.due is not None:
            changes["due_date"] = args.due
        if args.notes is not None:
            changes["notes"] = args.notes

        if not changes:
            print("Nothing to update.")
            return 0

        updated = update_order(order, actor, **changes)
        if updated is order:
            print(f"{order.order_number}: no changes")
            return 0
        store.put(updated)
        print(f"Updated {order.order_number}: {', '.join(sorted(changes))}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_dead(args: argparse.Namespace) -> int:
    """Close an order as a dead opportunity."""
    try:
        actor = get_actor(args)
        require(actor, "can_advance_stage")
        store = get_store()
        order = store.get(args.order)

        result = move_to_dead_opportunity(
            order, actor, also_create_lead=args.new_lead, notes=args.notes
        )
        if result.new_lead is not None:
            store.put(result.dead_order, result.new_lead)
        else:
            store.put(result.dead_order)

        print(f"Moved {order.order_number} to dead opportunity")
        if result.new_lead is not None:
            print(f"Created follow-up lead: {result.new_lead.order_number}")
            print(f"  ID: {result.new_lead.id}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_close(args: argparse.Namespace) -> int:
    """Close a completed order."""
    try:
        actor = get_actor(args)
        require(actor, "can_advance_stage")
        store = get_store()
        order = store.get(args.order)

        store.put(close_order(order, actor, reason=args.reason))
        print(f"Closed {order.order_number} ({args.reason})")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_reopen(args: argparse.Namespace) -> int:
    """Reopen a closed order at a stage."""
    try:
        actor = get_actor(args)
        require(actor, "can_advance_stage")
        store = get_store()
        order = store.get(args.order)

        updated = reopen_order(order, args.stage, actor, notes=args.notes)
        store.put(updated)
        print(f"Reopened {order.order_number} at {status_label(updated.status)}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_archive(args: argparse.Namespace) -> int:
    """Archive or unarchive an order."""
    try:
        actor = get_actor(args)
        require(actor, "can_archive_orders")
        store = get_store()
        order = store.get(args.order)

        if args.undo:
            store.put(unarchive_order(order, actor))
            print(f"Unarchived {order.order_number}")
        else:
            store.put(archive_order(order, actor))
            print(f"Archived {order.order_number}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_delete(args: argparse.Namespace) -> int:
    """Permanently delete orders."""
    try:
        actor = get_actor(args)
        require(actor, "can_delete_orders")
        if args.confirm != DELETE_CONFIRMATION:
            raise ConfirmationRequiredError(DELETE_CONFIRMATION)

        store = get_store()
        order_ids = [store.get(ref).id for ref in args.orders]
        removed = store.delete(order_ids, actor)

        print(f"Deleted {len(removed)} order(s)")
        for order in removed:
            print(f"  {truncate_id(order.id)}  {order.order_number}")
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Run consistency checks over all orders."""
    try:
        collection = get_store().load()
        result = validate_orders(collection.orders)

        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(format_report(result, verbose=args.verbose))

        return 0 if result.valid else 1

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_price(args: argparse.Namespace) -> int:
    """Preview the price of a line item."""
    breakdown = price_breakdown(
        {
            "cost": args.cost,
            "decoration_type": args.decoration,
            "decoration_placements": args.placements,
            "screen_print_colors": args.colors,
            "is_plus_size": args.plus_size,
            "stitch_count_tier": args.stitches,
            "dtf_size": args.dtf_size,
        }
    )
    if args.json:
        print(json.dumps(breakdown.to_dict(), indent=2))
    else:
        print(format_breakdown(breakdown))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        store = get_store()
        if not store.exists():
            print("Warning: order store not initialized. Run 'pallet init' first.", file=sys.stderr)
            print("Starting server anyway...", file=sys.stderr)

        print("Starting pallet API server...")
        print(f"Data: {store.path}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "pallet.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker to avoid concurrent write issues
        )
        return 0

    except PalletError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _add_price_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--decoration", "-d",
        choices=[d.value for d in DecorationType],
        default=DecorationType.SCREEN_PRINT.value,
        help="Decoration type (default: ScreenPrint)",
    )
    parser.add_argument("--cost", type=float, default=0.0, help="Wholesale unit cost")
    parser.add_argument(
        "--placements", type=int, default=1, help="Screen print placements (default: 1)"
    )
    parser.add_argument(
        "--colors", type=int, default=1, help="Screen print ink colors (default: 1)"
    )
    parser.add_argument(
        "--stitches",
        choices=[t.value for t in StitchCountTier],
        default=StitchCountTier.UNDER_8K.value,
        help="Embroidery stitch count tier (default: <8k)",
    )
    parser.add_argument(
        "--dtf-size",
        choices=[s.value for s in DtfSize],
        default=DtfSize.STANDARD.value,
        help="DTF transfer size (default: Standard)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    stage_names = [s.value for s in ORDER_STAGES]

    parser = argparse.ArgumentParser(
        prog="pallet",
        description="Track apparel decoration orders from lead to closeout.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--user", "-u", help="Acting user ID (default: $PALLET_USER or 'cli')")
    parser.add_argument(
        "--role",
        choices=[r.value for r in Role],
        help="Acting user role (default: $PALLET_ROLE or 'Admin')",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Initialize the order store")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing store"
    )

    # create
    create_cmd_parser = subparsers.add_parser("create", help="Create a new order")
    create_cmd_parser.add_argument("customer", help="Customer name")
    create_cmd_parser.add_argument("--email", "-e", help="Customer email")
    create_cmd_parser.add_argument("--phone", help="Customer phone")
    create_cmd_parser.add_argument("--project", "-p", help="Project name")
    create_cmd_parser.add_argument(
        "--status", "-s", choices=stage_names, help="Starting stage (default: Lead)"
    )
    create_cmd_parser.add_argument("--due", help="Due date (YYYY-MM-DD)")
    create_cmd_parser.add_argument("--rush", action="store_true", help="Mark as rush order")
    create_cmd_parser.add_argument("--number", help="Order number (default: generated)")

    # list
    list_parser = subparsers.add_parser("list", help="List orders")
    list_parser.add_argument("--stage", "-s", choices=stage_names, help="Only this stage")
    list_parser.add_argument(
        "--all", "-a", action="store_true", help="Include archived orders"
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show contact and line item details"
    )

    # show
    show_parser = subparsers.add_parser("show", help="Show an order")
    show_parser.add_argument("order", help="Order ID (or prefix) or order number")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")
    show_parser.add_argument("--history", action="store_true", help="Include history")

    # advance
    advance_parser = subparsers.add_parser(
        "advance", help="Move an order to the next stage (or a given stage)"
    )
    advance_parser.add_argument("order", help="Order ID (or prefix) or order number")
    advance_parser.add_argument(
        "stage", nargs="?", choices=stage_names, help="Target stage (default: next)"
    )
    advance_parser.add_argument("--notes", "-n", help="Notes for the history entry")
    advance_parser.add_argument(
        "--bypass", action="store_true",
        help="Waive the Art Confirmation or Production Prep gate",
    )
    advance_parser.add_argument(
        "--strict", action="store_true", help="Refuse the move if the stage gate is not met"
    )

    # add-items
    items_parser = subparsers.add_parser(
        "add-items", help="Add line items for a SKU across colors and sizes"
    )
    items_parser.add_argument("order", help="Order ID (or prefix) or order number")
    items_parser.add_argument("--name", required=True, help="Garment name")
    items_parser.add_argument("--item-number", help="Supplier item number")
    items_parser.add_argument("--description", help="Decoration description")
    items_parser.add_argument(
        "--variant", "-V", action="append", required=True,
        help="Color and quantities, e.g. 'Black:S=2,M=3,2XL=1' (repeatable)",
    )
    _add_price_options(items_parser)

    # progress
    progress_parser = subparsers.add_parser(
        "progress", help="Mark all line items ordered, received, or production complete"
    )
    progress_parser.add_argument("order", help="Order ID (or prefix) or order number")
    progress_parser.add_argument("step", choices=["ordered", "received", "production"])

    # update
    update_parser = subparsers.add_parser("update", help="Update order details")
    update_parser.add_argument("order", help="Order ID (or prefix) or order number")
    update_parser.add_argument(
        "--art-status", choices=[a.value for a in ArtStatus], help="Art status"
    )
    update_parser.add_argument(
        "--prep", action="append", choices=PREP_FLAGS, help="Mark a prep task done"
    )
    update_parser.add_argument(
        "--method", choices=[m.value for m in FulfillmentMethod], help="Fulfillment method"
    )
    update_parser.add_argument(
        "--label-printed", action="store_true", help="Shipping label printed"
    )
    update_parser.add_argument("--picked-up", action="store_true", help="Customer picked up")
    update_parser.add_argument("--tracking", help="Tracking number")
    update_parser.add_argument(
        "--invoice", action="append", choices=list(INVOICE_FLAGS), help="Invoice step done"
    )
    update_parser.add_argument(
        "--closeout", action="append", choices=CLOSEOUT_FLAGS, help="Closeout task done"
    )
    update_parser.add_argument("--due", help="Due date (YYYY-MM-DD)")
    update_parser.add_argument("--notes", help="Order notes")

    # dead
    dead_parser = subparsers.add_parser("dead", help="Close an order as a dead opportunity")
    dead_parser.add_argument("order", help="Order ID (or prefix) or order number")
    dead_parser.add_argument(
        "--new-lead", action="store_true", help="Also create a follow-up lead"
    )
    dead_parser.add_argument("--notes", "-n", help="Notes for the history entry")

    # close
    close_parser = subparsers.add_parser("close", help="Close a completed order")
    close_parser.add_argument("order", help="Order ID (or prefix) or order number")
    close_parser.add_argument("--reason", default="Completed", help="Reason (default: Completed)")

    # reopen
    reopen_parser = subparsers.add_parser("reopen", help="Reopen a closed order")
    reopen_parser.add_argument("order", help="Order ID (or prefix) or order number")
    reopen_parser.add_argument("stage", choices=stage_names[:-1], help="Stage to reopen at")
    reopen_parser.add_argument("--notes", "-n", help="Notes for the history entry")

    # archive
    archive_parser = subparsers.add_parser("archive", help="Archive an order")
    archive_parser.add_argument("order", help="Order ID (or prefix) or order number")
    archive_parser.add_argument("--undo", action="store_true", help="Unarchive instead")

    # delete
    delete_parser = subparsers.add_parser("delete", help="Permanently delete orders")
    delete_parser.add_argument("orders", nargs="+", help="Order IDs (or prefixes)")
    delete_parser.add_argument(
        "--confirm", help=f"Type {DELETE_CONFIRMATION} to confirm (cannot be undone)"
    )

    # validate
    validate_parser = subparsers.add_parser("validate", help="Check orders for consistency")
    validate_parser.add_argument("--json", action="store_true", help="Output as JSON")
    validate_parser.add_argument(
        "--verbose", "-v", action="store_true", help="List every order's result"
    )

    # price
    price_parser = subparsers.add_parser("price", help="Preview a line item price")
    _add_price_options(price_parser)
    price_parser.add_argument(
        "--plus-size", action="store_true", help="2XL or larger garment"
    )
    price_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(default_level="WARNING")
    clear_context()
    add_context(command=args.command)

    commands = {
        "init": cmd_init,
        "create": cmd_create,
        "list": cmd_list,
        "show": cmd_show,
        "advance": cmd_advance,
        "add-items": cmd_add_items,
        "progress": cmd_progress,
        "update": cmd_update,
        "dead": cmd_dead,
        "close": cmd_close,
        "reopen": cmd_reopen,
        "archive": cmd_archive,
        "delete": cmd_delete,
        "validate": cmd_validate,
        "price": cmd_price,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
