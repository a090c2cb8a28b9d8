# accounting/api/views/margin_reports.py

"""
PATH: accounting/api/views/margin_reports.py

MARGIN REPORT API VIEWS

Read-only endpoints over the margin attribution engine:

    GET /api/accounting/reports/margin-by-product/
    GET /api/accounting/reports/margin-by-customer/
    GET /api/accounting/reports/margin-by-purchase-order/

Query params: date_from, date_to (YYYY-MM-DD, inclusive, on sale_date).
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.services.exceptions import InvalidReportPeriod
from accounting.services.margin_attribution import (
    margin_by_customer,
    margin_by_product,
    margin_by_purchase_order,
)

PERIOD_PARAMETERS = [
    OpenApiParameter(
        name="date_from",
        type=str,
        location=OpenApiParameter.QUERY,
        required=False,
        description="YYYY-MM-DD. Sales with sale_date >= date_from.",
    ),
    OpenApiParameter(
        name="date_to",
        type=str,
        location=OpenApiParameter.QUERY,
        required=False,
        description="YYYY-MM-DD. Sales with sale_date <= date_to.",
    ),
]


class _MarginReportView(APIView):
    permission_classes = [IsAuthenticated]
    report = None

    def get(self, request):
        date_from = request.query_params.get("date_from")
        date_to = request.query_params.get("date_to")

        try:
            rows = type(self).report(date_from=date_from, date_to=date_to)
        except InvalidReportPeriod as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "period": {"date_from": date_from or None, "date_to": date_to or None},
                "count": len(rows),
                "results": rows,
            },
            status=status.HTTP_200_OK,
        )


_report_schema = extend_schema(tags=["accounting"], parameters=PERIOD_PARAMETERS, responses={200: dict})


@extend_schema_view(get=_report_schema)
class MarginByProductView(_MarginReportView):
    report = margin_by_product


@extend_schema_view(get=_report_schema)
class MarginByCustomerView(_MarginReportView):
    report = margin_by_customer


@extend_schema_view(get=_report_schema)
class MarginByPurchaseOrderView(_MarginReportView):
    report = margin_by_purchase_order
