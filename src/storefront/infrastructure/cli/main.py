import click

from storefront.infrastructure.bootstrap import build_container
from storefront.infrastructure.cli.catalog_commands import (
    coupon_add,
    coupon_deactivate,
    coupon_list,
    product_add,
    product_list,
    product_stock,
)
from storefront.infrastructure.cli.order_commands import (
    checkout,
    order_cancel,
    order_cancel_stale,
    order_complete,
    order_list,
    order_show,
)
from storefront.infrastructure.config import ConfigurationError, Settings
from storefront.infrastructure.log_config import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Storefront — checkout and order administration"""
    if ctx.obj is None:
        try:
            settings = Settings.from_env()
            configure_logging(settings.log_level, settings.log_json)
        except ConfigurationError as exc:
            raise click.ClickException(str(exc))
        ctx.obj = build_container(settings)


@cli.group()
def db() -> None:
    """Manage the database."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def coupon() -> None:
    """Manage coupons."""


@cli.group()
def order() -> None:
    """Manage orders."""


@db.command("init")
@click.pass_obj
def db_init(container) -> None:
    """Create the database schema."""
    container.engine  # building the engine creates the schema
    click.echo(f"Database ready at {container.settings.database_url}")


@cli.command("serve")
@click.option("--host", default="127.0.0.1", help="Interface to bind.")
@click.option("--port", default=8000, type=int, help="Port to listen on.")
@click.pass_obj
def serve(container, host: str, port: int) -> None:
    """Run the HTTP checkout endpoint."""
    import uvicorn

    from storefront.infrastructure.web.app import create_app

    uvicorn.run(create_app(container), host=host, port=port, workers=1)


# Register subcommands
cli.add_command(checkout)

product.add_command(product_add)
product.add_command(product_list)
product.add_command(product_stock)

coupon.add_command(coupon_add)
coupon.add_command(coupon_list)
coupon.add_command(coupon_deactivate)

order.add_command(order_list)
order.add_command(order_show)
order.add_command(order_complete)
order.add_command(order_cancel)
order.add_command(order_cancel_stale)
