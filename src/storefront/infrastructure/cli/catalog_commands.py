"""CLI commands for the catalog and coupon stores."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from storefront.application.add_product import AddProductHandler
from storefront.application.manage_coupons import AddCouponHandler, DeactivateCouponHandler
from storefront.application.set_stock import SetStockHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import Container


@click.command("add")
@click.option("--id", "product_id", default=None, help="Product ID (generated if omitted).")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--stock", required=True, type=int, help="Units in stock.")
@click.option("--image-url", default="", help="Product image reference.")
@click.pass_obj
def product_add(
    container: Container,
    product_id: str | None,
    name: str,
    price: str,
    stock: int,
    image_url: str,
) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(product_repo=container.products)
    try:
        product = handler.handle(
            name=name, price=price, stock=stock, product_id=product_id, image_url=image_url
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Product {product.id} '{product.name}' added at {product.price} ({product.stock} in stock)")


@click.command("list")
@click.pass_obj
def product_list(container: Container) -> None:
    """List all products in the catalog."""
    products = container.products.list_all()
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<38} {'Name':<20} {'Price':>10} {'Stock':>7}")
    click.echo("-" * 78)
    for p in products:
        click.echo(f"{p.id:<38} {p.name:<20} {str(p.price):>10} {p.stock:>7}")


@click.command("stock")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=click.IntRange(min=0), help="Units in stock.")
@click.pass_obj
def product_stock(container: Container, product_id: str, quantity: int) -> None:
    """Set the stock level of a product."""
    handler = SetStockHandler(product_repo=container.products)
    try:
        handler.handle(product_id=product_id, stock=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Stock for {product_id} set to {quantity}")


@click.command("add")
@click.option("--code", required=True, help="Coupon code (case-sensitive).")
@click.option(
    "--kind",
    required=True,
    type=click.Choice(["percentage", "fixed"]),
    help="Discount kind.",
)
@click.option("--value", required=True, help="Percent (0-100) or fixed amount.")
@click.option(
    "--expires",
    default=None,
    type=click.DateTime(),
    help="Expiry as an ISO date/time, interpreted as UTC.",
)
@click.pass_obj
def coupon_add(
    container: Container, code: str, kind: str, value: str, expires: datetime | None
) -> None:
    """Create a coupon."""
    handler = AddCouponHandler(coupon_repo=container.coupons)
    expires_at = expires.replace(tzinfo=timezone.utc) if expires else None
    try:
        coupon = handler.handle(code=code, kind=kind, value=value, expires_at=expires_at)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Coupon {coupon.code} created ({coupon.discount_kind.value} {coupon.value})")


@click.command("list")
@click.pass_obj
def coupon_list(container: Container) -> None:
    """List all coupons."""
    coupons = container.coupons.list_all()
    if not coupons:
        click.echo("No coupons found.")
        return

    click.echo(f"{'Code':<16} {'Kind':<11} {'Value':>8} {'Active':>7}  Expires")
    click.echo("-" * 64)
    for c in coupons:
        expires = c.expires_at.strftime("%Y-%m-%d %H:%M") if c.expires_at else "-"
        active = "yes" if c.is_active else "no"
        click.echo(f"{c.code:<16} {c.discount_kind.value:<11} {str(c.value):>8} {active:>7}  {expires}")


@click.command("deactivate")
@click.option("--code", required=True, help="Coupon code.")
@click.pass_obj
def coupon_deactivate(container: Container, code: str) -> None:
    """Deactivate a coupon so it no longer applies."""
    handler = DeactivateCouponHandler(coupon_repo=container.coupons)
    try:
        handler.handle(code)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Coupon {code} deactivated.")
