"""
Feature endpoints of the Tokay backend.

Thin wrappers over ApiClient.send: every method returns an ApiResult, so
dashboards can show a placeholder when a call fails instead of crashing.
"""

from typing import Any, Dict, Optional

from ..models.invoice import InvoiceDraft
from ..models.result import ApiResult
from .client import ApiClient


class ResilienceAPI:
    """Emergency fund, risk, invoice, receipt, alert, report and payment endpoints"""

    def __init__(self, client: ApiClient):
        self.client = client

    # Emergency fund
    def get_emergency_fund(self) -> ApiResult:
        return self.client.send("GET", "/emergency-fund")

    def update_contribution(self, data: Dict[str, Any]) -> ApiResult:
        return self.client.send("PUT", "/emergency-fund/contribution", data=data)

    def contribute(self, data: Dict[str, Any]) -> ApiResult:
        return self.client.send("POST", "/emergency-fund/contribute", data=data)

    def get_fund_transactions(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/emergency-fund/transactions", params=params)

    def get_fund_recommendations(self) -> ApiResult:
        return self.client.send("GET", "/emergency-fund/recommendations")

    # Risk
    def get_current_risk(self, business_id: str) -> ApiResult:
        return self.client.send("GET", f"/risk/current/{business_id}")

    def get_risk_assessments(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/risk", params=params)

    def run_risk_analysis(self, business_id: str) -> ApiResult:
        return self.client.send("POST", f"/risk/analyze/{business_id}")

    def get_risk_history(self, business_id: str, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", f"/risk/history/{business_id}", params=params)

    def get_risk_recommendations(self, business_id: str) -> ApiResult:
        return self.client.send("GET", f"/risk/recommendations/{business_id}")

    def get_location_risks(self, business_id: str) -> ApiResult:
        return self.client.send("GET", f"/risk/location/{business_id}")

    # Invoices
    def get_invoices(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/invoices", params=params)

    def get_invoice(self, invoice_id: str) -> ApiResult:
        return self.client.send("GET", f"/invoices/{invoice_id}")

    def create_invoice(self, draft: InvoiceDraft) -> ApiResult:
        return self.client.send("POST", "/invoices", data=draft.to_payload())

    def update_invoice(self, invoice_id: str, draft: InvoiceDraft) -> ApiResult:
        return self.client.send("PUT", f"/invoices/{invoice_id}", data=draft.to_payload())

    def delete_invoice(self, invoice_id: str) -> ApiResult:
        return self.client.send("DELETE", f"/invoices/{invoice_id}")

    def submit_to_lhdn(self, invoice_id: str) -> ApiResult:
        return self.client.send("POST", f"/invoices/{invoice_id}/submit-lhdn")

    def send_invoice(self, invoice_id: str, data: Dict[str, Any]) -> ApiResult:
        return self.client.send("POST", f"/invoices/{invoice_id}/send", data=data)

    # Receipts
    def get_receipts(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/receipts", params=params)

    def analyze_receipt(self, receipt_id: str) -> ApiResult:
        return self.client.send("POST", f"/receipts/{receipt_id}/analyze")

    # Alerts
    def get_alerts(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/alerts", params=params)

    def mark_alert_as_read(self, alert_id: str) -> ApiResult:
        return self.client.send("PUT", f"/alerts/{alert_id}/read")

    # Reports
    def get_reports(self, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("GET", "/reports", params=params)

    def generate_report(self, report_type: str, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return self.client.send("POST", f"/reports/generate/{report_type}", data=params)

    # Payments
    def get_payment_methods(self) -> ApiResult:
        return self.client.send("GET", "/payments/methods")

    def process_payment(self, data: Dict[str, Any]) -> ApiResult:
        return self.client.send("POST", "/payments/process", data=data)

    def initiate_mock_payment(
        self,
        amount: float,
        payment_method: str,
        description: str = "Emergency fund contribution",
    ) -> ApiResult:
        return self.client.send(
            "POST",
            "/payments/mock/initiate",
            data={"amount": amount, "paymentMethod": payment_method, "description": description},
        )

    def get_mock_payment_status(self, transaction_id: str) -> ApiResult:
        return self.client.send("GET", f"/payments/mock/status/{transaction_id}")
