"""Application service: Show Statistics use case (query).

Builds a ``SalesStatistics`` over one committed snapshot, so every figure
in a report comes from the same state of the store.
"""

from __future__ import annotations

from dataclasses import dataclass

from storeops.domain.repository.unit_of_work import UnitOfWork
from storeops.domain.service.sales_statistics import (
    BreakdownRow,
    DateRange,
    Dimension,
    GroupBy,
    InventorySummary,
    Overview,
    PeriodComparison,
    RevenueBucket,
    SalesStatistics,
)


@dataclass(frozen=True)
class DashboardReport:
    period: DateRange
    comparison: PeriodComparison
    overview: Overview
    series: list[RevenueBucket]
    by_category: list[BreakdownRow]
    by_payment_method: list[BreakdownRow]
    top_products: list[BreakdownRow]
    top_customers: list[BreakdownRow]
    inventory: InventorySummary


class ShowStatisticsHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def snapshot(self) -> SalesStatistics:
        with self._uow:
            return SalesStatistics(
                self._uow.orders.list_all(), self._uow.products.list_all()
            )

    def handle(
        self,
        period: DateRange,
        group_by: GroupBy = GroupBy.DAY,
        top: int = 5,
    ) -> DashboardReport:
        stats = self.snapshot()
        return DashboardReport(
            period=period,
            comparison=stats.period_comparison(period),
            overview=stats.overview(period),
            series=stats.revenue_series(period, group_by),
            by_category=stats.breakdown(period, Dimension.CATEGORY),
            by_payment_method=stats.breakdown(period, Dimension.PAYMENT_METHOD),
            top_products=stats.top_products(period, top),
            top_customers=stats.top_customers(period, top),
            inventory=stats.inventory_summary(),
        )
