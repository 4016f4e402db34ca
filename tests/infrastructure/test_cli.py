"""Tests for the click CLI, run against an in-memory database."""

import pytest
from click.testing import CliRunner

from storefront.infrastructure.bootstrap import Container
from storefront.infrastructure.cli.main import cli
from storefront.infrastructure.config import Settings


@pytest.fixture
def container():
    return Container(Settings(database_url="sqlite://"))


def _run(container, *args):
    return CliRunner().invoke(cli, list(args), obj=container)


def _seed(container):
    _run(container, "product", "add", "--id", "P1", "--name", "Tee", "--price", "10.00", "--stock", "5")
    _run(container, "coupon", "add", "--code", "SAVE10", "--kind", "percentage", "--value", "10")


class TestCatalogCommands:

    def test_product_add_and_list(self, container):
        result = _run(container, "product", "add", "--id", "P1", "--name", "Tee", "--price", "10.00", "--stock", "5")
        assert result.exit_code == 0
        assert "Product P1 'Tee' added at $10.00" in result.output

        listing = _run(container, "product", "list")
        assert "Tee" in listing.output

    def test_product_stock(self, container):
        _seed(container)
        result = _run(container, "product", "stock", "--id", "P1", "--quantity", "9")
        assert result.exit_code == 0
        assert container.products.get_by_id("P1").stock == 9

    def test_coupon_add_list_deactivate(self, container):
        _seed(container)
        assert "SAVE10" in _run(container, "coupon", "list").output

        result = _run(container, "coupon", "deactivate", "--code", "SAVE10")

        assert result.exit_code == 0
        assert container.coupons.get_by_code("SAVE10").is_active is False

    def test_bad_coupon_reports_error(self, container):
        result = _run(container, "coupon", "add", "--code", "X", "--kind", "percentage", "--value", "150")
        assert result.exit_code != 0
        assert "more than 100" in result.output


class TestOrderCommands:

    def test_checkout_and_show(self, container):
        _seed(container)
        result = _run(container, "checkout", "--user", "u1", "--items", "P1:2:red:M", "--coupon", "SAVE10")
        assert result.exit_code == 0, result.output
        order_id = container.orders.list_for_user("u1")[0].id

        shown = _run(container, "order", "show", "--id", order_id)

        assert "status=pending" in shown.output
        assert "$34.44" in shown.output

    def test_checkout_failure_exits_nonzero(self, container):
        _seed(container)
        result = _run(container, "checkout", "--user", "u1", "--items", "P1:99")
        assert result.exit_code != 0
        assert "Insufficient stock for Tee" in result.output

    def test_bad_item_format(self, container):
        result = _run(container, "checkout", "--user", "u1", "--items", "P1")
        assert result.exit_code != 0
        assert "Invalid item format" in result.output

    def test_complete_and_cancel(self, container):
        _seed(container)
        _run(container, "checkout", "--user", "u1", "--items", "P1:1")
        _run(container, "checkout", "--user", "u1", "--items", "P1:1")
        first, second = [o.id for o in container.orders.list_for_user("u1")]

        assert _run(container, "order", "complete", "--id", first).exit_code == 0
        assert _run(container, "order", "cancel", "--id", second).exit_code == 0
        assert _run(container, "order", "cancel", "--id", first).exit_code != 0
        assert container.products.get_by_id("P1").stock == 4

    def test_cancel_stale_with_nothing_stale(self, container):
        _seed(container)
        _run(container, "checkout", "--user", "u1", "--items", "P1:1")

        result = _run(container, "order", "cancel-stale", "--older-than-minutes", "60")

        assert result.exit_code == 0
        assert "Cancelled 0 stale order(s)." in result.output

    def test_order_list(self, container):
        _seed(container)
        _run(container, "checkout", "--user", "u1", "--items", "P1:1")
        assert "pending" in _run(container, "order", "list", "--user", "u1").output
        assert "No orders found." in _run(container, "order", "list", "--user", "u2").output

    def test_db_init(self, container):
        result = _run(container, "db", "init")
        assert result.exit_code == 0
        assert "Database ready" in result.output
