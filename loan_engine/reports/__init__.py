"""Portfolio reporting."""

from loan_engine.reports.portfolio import PortfolioReports, taxable_revenue

__all__ = ["PortfolioReports", "taxable_revenue"]
