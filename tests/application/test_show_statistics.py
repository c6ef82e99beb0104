"""Integration tests for the statistics dashboard over committed data."""

from datetime import date
from decimal import Decimal

from storeops.application.delete_order import DeleteOrderHandler
from storeops.application.show_statistics import ShowStatisticsHandler
from storeops.domain.service.sales_statistics import DateRange, GroupBy
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork

MARCH = DateRange.of_days(date(2026, 3, 1), date(2026, 3, 31))


class TestDashboard:

    def test_report_is_consistent(self, store, place_order):
        place_order(("1", 2), email="alice@example.com")       # 30 + 3 tax
        place_order(("2", 1), ("1", 1), email="bob@example.com")  # 40 + 4 tax
        deleted = place_order(("2", 1), email="carol@example.com")
        DeleteOrderHandler(StoreUnitOfWork(store)).handle(deleted, actor="admin")

        report = ShowStatisticsHandler(StoreUnitOfWork(store)).handle(MARCH, GroupBy.WEEK, top=1)

        assert report.overview.orders == 2
        assert report.overview.revenue == Decimal("77.00")
        assert sum(b.revenue for b in report.series) == report.overview.revenue
        assert sum(r.percentage for r in report.by_category) == Decimal("100.00")
        assert sum(r.percentage for r in report.by_payment_method) == Decimal("100.00")
        assert [r.key for r in report.top_customers] == ["bob@example.com"]
        assert report.comparison.revenue_growth == Decimal("100.00")
        # The deleted order restocked its Gadget.
        assert report.inventory.units_sold == 4

    def test_empty_store(self, store):
        report = ShowStatisticsHandler(StoreUnitOfWork(store)).handle(MARCH)
        assert report.overview.orders == 0
        assert report.overview.average_order_value == Decimal("0.00")
        assert len(report.series) == 31
        assert report.by_category == []
        assert report.comparison.revenue_growth == Decimal("0.00")
