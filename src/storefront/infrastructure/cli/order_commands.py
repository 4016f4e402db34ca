"""CLI commands for checkout and the Order aggregate."""

from __future__ import annotations

from datetime import timedelta

import click

from storefront.application.cancel_order import CancelOrderHandler
from storefront.application.cancel_stale_orders import CancelStaleOrdersHandler
from storefront.application.complete_order import CompleteOrderHandler
from storefront.application.dto import CartItemSpec, OrderDTO
from storefront.application.show_orders import ListOrdersHandler, ShowOrderHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import Container


def _parse_items(raw: str) -> list[CartItemSpec]:
    """Parse 'P1:3,P2:5:red:M' into CartItemSpec list (colour and size optional)."""
    specs: list[CartItemSpec] = []
    for entry in raw.split(","):
        entry = entry.strip()
        parts = entry.split(":")
        if len(parts) < 2 or len(parts) > 4 or not parts[0]:
            raise click.BadParameter(
                f"Invalid item format '{entry}'. Expected 'ProductId:Quantity[:Color[:Size]]'."
            )
        try:
            qty = int(parts[1])
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{parts[1]}' for product '{parts[0]}'."
            )
        color = parts[2] if len(parts) > 2 and parts[2] else None
        size = parts[3] if len(parts) > 3 and parts[3] else None
        specs.append(CartItemSpec(product_id=parts[0], quantity=qty, color=color, size=size))
    return specs


@click.command("checkout")
@click.option("--user", "user_id", required=True, help="Verified user id.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty,ProductId:Qty'.")
@click.option("--coupon", "coupon_code", default=None, help="Coupon code.")
@click.option("--idempotency-key", default=None, help="Key that makes retries safe.")
@click.pass_obj
def checkout(
    container: Container,
    user_id: str,
    items: str,
    coupon_code: str | None,
    idempotency_key: str | None,
) -> None:
    """Place an order for a user's cart."""
    specs = _parse_items(items)
    outcome = container.place_order_handler().handle(
        user_id=user_id,
        item_specs=specs,
        coupon_code=coupon_code,
        idempotency_key=idempotency_key,
    )
    if not outcome.succeeded:
        raise click.ClickException(outcome.error_message or "Checkout failed")

    click.echo(f"Order {outcome.order_id} placed")
    click.echo(f"Payment session: {outcome.session_id}")
    click.echo(f"Redirect: {outcome.redirect_url}")


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.id}  (status={dto.status})")
    click.echo(f"User:     {dto.user_id}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()

    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*47}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.price_at_time:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Subtotal':<27} {dto.subtotal:>20}")
    click.echo(f"  {'Discount':<27} {dto.discount:>20}")
    click.echo(f"  {'Tax':<27} {dto.tax:>20}")
    click.echo(f"  {'Shipping':<27} {dto.shipping:>20}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
@click.pass_obj
def order_show(container: Container, order_id: str) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=container.orders)
    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    _display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, help="User whose orders to list.")
@click.pass_obj
def order_list(container: Container, user_id: str) -> None:
    """List a user's orders, newest first."""
    dtos = ListOrdersHandler(order_repo=container.orders).handle(user_id)
    if not dtos:
        click.echo("No orders found.")
        return

    click.echo(f"{'ID':<38} {'Status':<10} {'Total':>10}  Created")
    click.echo("-" * 78)
    for dto in dtos:
        click.echo(f"{dto.id:<38} {dto.status:<10} {dto.total:>10}  {dto.created_at}")


@click.command("complete")
@click.option("--id", "order_id", required=True, help="Order ID to complete.")
@click.pass_obj
def order_complete(container: Container, order_id: str) -> None:
    """Mark a pending order as paid."""
    handler = CompleteOrderHandler(order_repo=container.orders)
    try:
        handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Order {order_id} completed.")


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order ID to cancel.")
@click.pass_obj
def order_cancel(container: Container, order_id: str) -> None:
    """Cancel a pending order (returns its stock)."""
    handler = CancelOrderHandler(
        order_repo=container.orders,
        inventory_repo=container.inventory,
    )
    try:
        handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Order {order_id} cancelled.")


@click.command("cancel-stale")
@click.option(
    "--older-than-minutes",
    required=True,
    type=click.IntRange(min=1),
    help="Cancel pending orders older than this.",
)
@click.pass_obj
def order_cancel_stale(container: Container, older_than_minutes: int) -> None:
    """Cancel pending orders that were never paid."""
    handler = CancelStaleOrdersHandler(
        order_repo=container.orders,
        inventory_repo=container.inventory,
    )
    try:
        cancelled = handler.handle(timedelta(minutes=older_than_minutes))
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Cancelled {len(cancelled)} stale order(s).")
    for order_id in cancelled:
        click.echo(f"  {order_id}")
